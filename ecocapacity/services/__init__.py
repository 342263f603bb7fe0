"""Services that wire the pure calculators to the record store and provider.

- WeatherIngestService: fetch, classify and persist weather observations
- CapacityService: dynamic capacity for stored destinations
- AlertService: aggregated alert list and operator alert writes
- SustainabilityService: batch scoring and low-impact alternatives
"""
