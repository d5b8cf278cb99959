"""Channel statistics for the signed-in creator."""

from typing import List, Optional, Tuple
from uuid import UUID
import logging

from vidtube.db.astra_client import get_collection, AstraDBCollection, VIDEOS_COLLECTION
from vidtube.models.dashboard import ChannelStats
from vidtube.models.like import LikeTargetEnum
from vidtube.models.video import ChannelVideo
from vidtube.utils.db_helpers import fetch_all

logger = logging.getLogger(__name__)


async def get_channel_stats(
    owner_id: UUID, db_table: Optional[AstraDBCollection] = None
) -> ChannelStats:
    """Totals across every video of the channel, unpublished ones included."""

    from vidtube.services import like_service, subscription_service

    table = db_table if db_table is not None else await get_collection(VIDEOS_COLLECTION)
    docs = await fetch_all(
        table.find(filter={"userid": str(owner_id)}, projection={"videoid": 1, "views": 1})
    )

    total_views = sum(int(d.get("views") or 0) for d in docs)
    total_likes = await like_service.count_likes_for_targets(
        LikeTargetEnum.VIDEO, [d["videoid"] for d in docs]
    )
    total_subscribers = await subscription_service.count_subscribers(owner_id)

    return ChannelStats(
        totalVideos=len(docs),
        totalViews=total_views,
        totalSubscribers=total_subscribers,
        totalLikes=total_likes,
    )


async def get_channel_videos(
    owner_id: UUID, page: int, page_size: int
) -> Tuple[List[ChannelVideo], int]:
    from vidtube.services import video_service

    videos, total = await video_service.list_channel_videos(
        owner_id, page=page, page_size=page_size
    )
    return await video_service.channel_video_rows(videos), total
