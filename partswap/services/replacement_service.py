"""Drop-in replacement search over components that share a package."""

import logging

from prometheus_client import Counter, Histogram
from sqlalchemy.orm import Session

from partswap.exceptions import PreconditionFailedException
from partswap.models.component import Component
from partswap.schemas.component import ComponentListSchema
from partswap.schemas.replacement import ReplacementListSchema, ReplacementResult
from partswap.services.base import BaseService
from partswap.services.component_service import ComponentService
from partswap.utils.replacement_scoring import (
    calculate_pinout_match,
    calculate_specs_match,
    combine_scores,
    rank_results,
)

logger = logging.getLogger(__name__)

REPLACEMENT_SEARCHES_TOTAL = Counter(
    "replacement_searches_total",
    "Replacement searches by outcome",
    ["outcome"],
)
REPLACEMENT_CANDIDATES = Histogram(
    "replacement_candidates",
    "Number of same-package candidates scored per replacement search",
    buckets=(0, 1, 5, 10, 25, 50, 100, 250, 500),
)


class ReplacementService(BaseService):
    """Ranks same-package components by pin and spec compatibility."""

    def __init__(self, db: Session, component_service: ComponentService):
        super().__init__(db)
        self.component_service = component_service

    def find_replacements(self, component: Component) -> list[ReplacementResult]:
        """Score every other component with the same normalized package, best first.

        Raises:
            PreconditionFailedException: The reference has no normalized package.
        """
        if not component.package_normalized:
            REPLACEMENT_SEARCHES_TOTAL.labels(outcome="no_package").inc()
            raise PreconditionFailedException(
                "find replacements", f"component {component.mpn} has no normalized package"
            )

        candidates = self.component_service.get_components_by_package(
            component.package_normalized, exclude_id=component.id
        )
        REPLACEMENT_CANDIDATES.observe(len(candidates))

        original_pins = list(component.pinouts)
        results: list[ReplacementResult] = []
        for candidate in candidates:
            pinout_match = calculate_pinout_match(original_pins, list(candidate.pinouts))
            specs_match = calculate_specs_match(component.specs, candidate.specs)
            results.append(
                ReplacementResult(
                    component=ComponentListSchema.model_validate(candidate),
                    match_score=combine_scores(pinout_match.score, specs_match.score),
                    pinout_match=pinout_match,
                    specs_match=specs_match,
                )
            )

        ranked = rank_results(results)
        REPLACEMENT_SEARCHES_TOTAL.labels(outcome="success").inc()
        logger.info(
            f"Scored {len(ranked)} replacement candidates for {component.mpn} ({component.package_normalized})"
        )
        return ranked

    def find_replacements_by_mpn(self, mpn: str) -> ReplacementListSchema:
        """Replacement search for a stored component looked up by MPN (case-insensitive).

        Raises:
            RecordNotFoundException: No component with that MPN.
            PreconditionFailedException: The component has no normalized package.
        """
        component = self.component_service.require_component_by_mpn(mpn)
        results = self.find_replacements(component)
        return ReplacementListSchema(
            original=ComponentListSchema.model_validate(component),
            results=results,
        )
