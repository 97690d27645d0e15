"""CloudFront gateway for edge cache invalidation."""
import asyncio
import logging
from typing import List, Optional

import boto3

logger = logging.getLogger(__name__)


class CloudFrontInvalidator:
    """
    Gateway to CloudFront invalidations.

    Implements ICacheInvalidator protocol.
    """

    def __init__(self, session: Optional[boto3.session.Session] = None, client=None):
        self._client = client or (session or boto3.session.Session()).client("cloudfront")

    async def create_invalidation(
        self,
        distribution_id: str,
        caller_reference: str,
        paths: List[str],
    ) -> str:
        response = await asyncio.to_thread(
            self._client.create_invalidation,
            DistributionId=distribution_id,
            InvalidationBatch={
                "CallerReference": caller_reference,
                "Paths": {"Quantity": len(paths), "Items": list(paths)},
            },
        )
        invalidation_id = response["Invalidation"]["Id"]
        logger.info(f"Invalidation {invalidation_id} created for {distribution_id} ({len(paths)} path(s))")
        return invalidation_id
