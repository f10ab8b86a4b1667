"""Join convenience function."""

import logging
from typing import Mapping

from citeguard.parsing.models import Citation
from citeguard.verification.models import CitationStatus, Verification
from citeguard.verification.status import get_citation_status

logger = logging.getLogger(__name__)


def attach_verifications(
    citations: Mapping[str, Citation],
    verifications: Mapping[str, Verification],
) -> dict[str, CitationStatus]:
    """Status for every citation key; keys without a verification are pending."""
    statuses = {
        key: get_citation_status(verifications.get(key)) for key in citations
    }
    orphans = len(set(verifications) - set(citations))
    if orphans:
        logger.warning("%d verifications have no matching citation key", orphans)
    return statuses
