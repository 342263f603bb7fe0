"""Sustainability service: batch scoring and alternative lookup over stored destinations."""

import logging
from dataclasses import dataclass, field
from typing import Any

from ecocapacity.calculators.sustainability import (
    calculate_sustainability_score,
    find_low_impact_alternatives,
)
from ecocapacity.config import DEFAULT_SUSTAINABILITY_CONFIG, PolicyConfig, SustainabilityConfig
from ecocapacity.models.domain import Destination, SustainabilityScore
from ecocapacity.repositories.repository import Repository
from ecocapacity.services.capacity import CapacityService
from ecocapacity.validation.destination import parse_destinations
from ecocapacity.validation.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ScoreBatch:
    """Scores for valid destinations plus errors for the excluded ones."""

    scores: list[SustainabilityScore] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)


class SustainabilityService:
    def __init__(
        self,
        repository: Repository,
        capacity_service: CapacityService,
        config: SustainabilityConfig = DEFAULT_SUSTAINABILITY_CONFIG,
    ):
        self.repository = repository
        self.capacity_service = capacity_service
        self.config = config

    @property
    def policy_config(self) -> PolicyConfig:
        return self.capacity_service.engine.config

    def score(self, destination: Destination) -> SustainabilityScore:
        return calculate_sustainability_score(destination, self.config, self.policy_config)

    def score_records(self, records: list[dict[str, Any]]) -> ScoreBatch:
        """Score raw destination records, excluding malformed ones with a reported error."""
        destinations, errors = parse_destinations(records, self.repository.validator)
        for error in errors:
            logger.warning(f"Excluded {error.destination_id} from scoring: {error.message}")
        return ScoreBatch(scores=[self.score(d) for d in destinations], errors=errors)

    def score_all(self) -> ScoreBatch:
        return self.score_records(self.repository.fetch_destination_records(active_only=False))

    def find_alternatives(self, reference: Destination, k: int = 2) -> list[Destination]:
        """Lower-impact active destinations with spare headroom."""
        destinations = self.repository.fetch_destinations(active_only=True)
        capacity_map = self.capacity_service.get_capacity_map(destinations)
        return find_low_impact_alternatives(
            destinations,
            reference,
            capacity_map,
            k,
            config=self.config,
            policy_config=self.policy_config,
        )
