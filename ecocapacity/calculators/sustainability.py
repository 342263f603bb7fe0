"""Sustainability scoring and low-impact alternative ranking.

Sub-scores are all on a 0-100 scale and derived purely from destination
fields; the overall score is their weighted sum (weights from
SustainabilityConfig), rounded half up and clamped to [0, 100].

Sub-scores:
    carbon: inverse footprint. Visitor pressure is occupancy relative to the
        static tier capacity, so the same crowd weighs more on a fragile
        site. Renewable energy scales pressure by 0.7 and waste management
        adds a flat bonus.
    community: local employment (default 0.4), community fund share
        (default 0.05, saturating at 10% of revenue) and local sourcing
        (0.8 for certified waste management, else 0.5).
    wildlife: 100 with a protection programme, otherwise falls with tier.
    certification: tiered on the number of certifications held.
"""

from collections.abc import Iterable, Mapping

from ecocapacity.calculators.rounding import clamp, round_half_up
from ecocapacity.config import (
    CONSTANTS,
    DEFAULT_POLICY_CONFIG,
    DEFAULT_SUSTAINABILITY_CONFIG,
    PolicyConfig,
    SustainabilityConfig,
)
from ecocapacity.models.domain import (
    CarbonOffset,
    Destination,
    DynamicCapacityResult,
    SustainabilityFeatures,
    SustainabilityScore,
)
from ecocapacity.models.enums import ImpactCategory, SensitivityLevel, WasteManagementLevel

DEFAULT_LOCAL_EMPLOYMENT_RATIO = 0.4
DEFAULT_COMMUNITY_FUND_SHARE = 0.05
COMMUNITY_FUND_SATURATION = 0.10

OFFSET_PROJECTS = (
    "Himalayan Reforestation",
    "Local Solar Grid",
    "Community Waste-to-Energy",
)

_WASTE_BONUS = {
    WasteManagementLevel.BASIC: 0.0,
    WasteManagementLevel.ADVANCED: 10.0,
    WasteManagementLevel.CERTIFIED: 15.0,
}

_UNPROTECTED_WILDLIFE_SCORE = {
    SensitivityLevel.LOW: 70.0,
    SensitivityLevel.MEDIUM: 50.0,
    SensitivityLevel.HIGH: 30.0,
    SensitivityLevel.CRITICAL: 10.0,
}

# Index = number of certifications held, capped at the last entry
_CERTIFICATION_TIERS = (0.0, 60.0, 80.0, 100.0)


def _features(destination: Destination) -> SustainabilityFeatures:
    return destination.sustainability_features or SustainabilityFeatures()


def estimate_daily_co2_kg(destination: Destination, visitors: int) -> float:
    """Estimated CO2 (kg) for ``visitors`` spending one day at the destination."""
    per_visitor = CONSTANTS.KG_CO2_PER_VISITOR_DAY
    if _features(destination).has_renewable_energy:
        per_visitor *= CONSTANTS.RENEWABLE_ENERGY_CO2_FACTOR
    return per_visitor * max(visitors, 0)


def calculate_carbon_score(destination: Destination, policy_config: PolicyConfig) -> float:
    features = _features(destination)
    multiplier = policy_config.tiers[destination.ecological_sensitivity].capacity_multiplier
    pressure = clamp(destination.current_occupancy / (destination.max_capacity * multiplier), 0, 1)
    if features.has_renewable_energy:
        pressure *= CONSTANTS.RENEWABLE_ENERGY_CO2_FACTOR
    return clamp(100.0 * (1.0 - pressure) + _WASTE_BONUS[features.waste_management_level], 0, 100)


def calculate_community_score(destination: Destination) -> float:
    features = _features(destination)
    employment = (
        features.local_employment_ratio
        if features.local_employment_ratio is not None
        else DEFAULT_LOCAL_EMPLOYMENT_RATIO
    )
    fund_share = (
        features.community_fund_share
        if features.community_fund_share is not None
        else DEFAULT_COMMUNITY_FUND_SHARE
    )
    sourcing = 0.8 if features.waste_management_level is WasteManagementLevel.CERTIFIED else 0.5

    score = (
        50.0 * employment
        + 25.0 * min(fund_share / COMMUNITY_FUND_SATURATION, 1.0)
        + 25.0 * sourcing
    )
    return clamp(score, 0, 100)


def calculate_wildlife_score(destination: Destination) -> float:
    if _features(destination).wildlife_protection_program:
        return 100.0
    return _UNPROTECTED_WILDLIFE_SCORE[destination.ecological_sensitivity]


def calculate_certification_score(destination: Destination) -> float:
    held = len(_features(destination).certifications)
    return _CERTIFICATION_TIERS[min(held, len(_CERTIFICATION_TIERS) - 1)]


def categorize_impact(destination: Destination) -> ImpactCategory:
    """Headline sustainability profile.

    Strong local employment wins, then protected wildlife at fragile sites,
    then moderate local employment; everything else is low-carbon.
    """
    features = _features(destination)
    employment = features.local_employment_ratio or 0.0

    if employment >= 0.8:
        return ImpactCategory.COMMUNITY_FRIENDLY
    if features.wildlife_protection_program and destination.ecological_sensitivity in (
        SensitivityLevel.HIGH,
        SensitivityLevel.CRITICAL,
    ):
        return ImpactCategory.WILDLIFE_SAFE
    if employment > 0.6:
        return ImpactCategory.COMMUNITY_FRIENDLY
    return ImpactCategory.LOW_CARBON


def calculate_sustainability_score(
    destination: Destination,
    config: SustainabilityConfig = DEFAULT_SUSTAINABILITY_CONFIG,
    policy_config: PolicyConfig = DEFAULT_POLICY_CONFIG,
) -> SustainabilityScore:
    """Composite 0-100 sustainability score for a destination.

    Args:
        destination: Destination to score
        config: Sub-score weights (default: DEFAULT_SUSTAINABILITY_CONFIG)
        policy_config: Tier multipliers used to size visitor pressure

    Returns:
        SustainabilityScore with sub-scores, daily CO2 estimate and category
    """
    carbon = calculate_carbon_score(destination, policy_config)
    community = calculate_community_score(destination)
    wildlife = calculate_wildlife_score(destination)
    certification = calculate_certification_score(destination)

    weighted = (
        carbon * config.carbon_weight
        + community * config.community_weight
        + wildlife * config.wildlife_weight
        + certification * config.certification_weight
    )

    co2 = estimate_daily_co2_kg(destination, destination.current_occupancy)

    return SustainabilityScore(
        destination_id=destination.id,
        overall_score=int(clamp(round_half_up(weighted), 0, 100)),
        carbon_score=round(carbon, 2),
        community_score=round(community, 2),
        wildlife_score=wildlife,
        certification_score=certification,
        estimated_co2_kg=round(co2, 2),
        impact_category=categorize_impact(destination),
    )


def calculate_carbon_offset(destination: Destination, group_size: int = 1) -> CarbonOffset:
    """Estimated CO2 and offset cost for a group visiting for one day."""
    if group_size < 1:
        msg = f"group_size must be at least 1, got {group_size}"
        raise ValueError(msg)

    co2 = estimate_daily_co2_kg(destination, group_size)
    return CarbonOffset(
        estimated_co2_kg=round(co2, 2),
        offset_cost=round_half_up(co2 * CONSTANTS.OFFSET_COST_PER_KG_CO2),
        offset_projects=OFFSET_PROJECTS,
    )


def find_low_impact_alternatives(
    all_destinations: Iterable[Destination],
    reference: Destination,
    capacity_map: Mapping[str, DynamicCapacityResult],
    k: int = 2,
    *,
    config: SustainabilityConfig = DEFAULT_SUSTAINABILITY_CONFIG,
    policy_config: PolicyConfig = DEFAULT_POLICY_CONFIG,
) -> list[Destination]:
    """Top ``k`` active destinations with spare headroom, best score first.

    A candidate qualifies when it is active, is not ``reference``, has a
    capacity result in ``capacity_map`` and its utilization of adjusted
    capacity is below ``config.alternative_max_utilization``. Candidates are
    ranked by overall score descending, ties by destination id ascending.

    Args:
        all_destinations: Destination snapshot to search
        reference: Destination the visitor is being steered away from
        capacity_map: Adjusted capacity per destination id
        k: Maximum number of alternatives to return
        config: Scoring weights and headroom threshold
        policy_config: Tier multipliers used by the carbon sub-score

    Returns:
        Up to ``k`` destinations
    """
    if k <= 0:
        return []

    candidates: list[tuple[int, str, Destination]] = []
    for destination in all_destinations:
        if not destination.is_active or destination.id == reference.id:
            continue
        result = capacity_map.get(destination.id)
        if result is None:
            continue
        if result.utilization(destination.current_occupancy) >= config.alternative_max_utilization:
            continue
        score = calculate_sustainability_score(destination, config, policy_config).overall_score
        candidates.append((-score, destination.id, destination))

    candidates.sort(key=lambda item: (item[0], item[1]))
    return [destination for _, _, destination in candidates[:k]]
