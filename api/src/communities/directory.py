"""Member directory used to resolve notification recipients."""

from uuid import UUID

from .store import MembershipStore


class MemberDirectory:
    """Resolve usernames of a community's members and moderation team."""

    def __init__(self, store: MembershipStore):
        self.store = store

    async def find_members(self, community_id: UUID) -> list[str]:
        """All participants, or an empty list for a missing community."""
        community = await self.store.get(community_id)
        if community is None:
            return []
        return sorted(community.participants)

    async def find_moderation_team(self, community_id: UUID) -> list[str]:
        """Admin and moderators, or an empty list for a missing community."""
        community = await self.store.get(community_id)
        if community is None:
            return []
        return community.moderation_team()
