from pydantic import BaseModel


class ChannelStats(BaseModel):
    """Totals for the authenticated user's channel."""

    totalVideos: int = 0
    totalViews: int = 0
    totalSubscribers: int = 0
    totalLikes: int = 0
