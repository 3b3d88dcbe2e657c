"""Route diversity: reject candidates that retrace an already-accepted route."""

import logging
from typing import Sequence

import config
from geo import GeoPoint, distance_m, sample_evenly

logger = logging.getLogger(__name__)


def route_similarity(
    route1: Sequence[GeoPoint],
    route2: Sequence[GeoPoint],
    sample_size: int = config.SIMILARITY_SAMPLE_SIZE,
    radius_m: float = config.SIMILARITY_RADIUS_M,
) -> float:
    """0..1 overlap: mean proximity credit over all sampled point pairs."""
    samples1 = sample_evenly(route1, sample_size)
    samples2 = sample_evenly(route2, sample_size)
    if not samples1 or not samples2:
        return 0.0

    total = 0.0
    for a in samples1:
        for b in samples2:
            d = distance_m(a, b)
            if d < radius_m:
                total += 1 - d / radius_m
    return total / (len(samples1) * len(samples2))


def is_too_similar(
    candidate: Sequence[GeoPoint],
    accepted: Sequence[Sequence[GeoPoint]],
    threshold: float = config.DEFAULT_SIMILARITY_THRESHOLD,
) -> bool:
    for i, existing in enumerate(accepted):
        similarity = route_similarity(candidate, existing)
        if similarity > threshold:
            logger.info("Candidate too similar to route %d (similarity %.2f)", i + 1, similarity)
            return True
    return False
