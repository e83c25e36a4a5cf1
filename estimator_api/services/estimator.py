"""Reference COVID-19 impact estimator.

The HTTP pipeline treats the estimator as an opaque callable
``estimate(data) -> dict``; this module is the default implementation wired
by ``create_app``. Input shape is validated here, not in the pipeline.
"""

from __future__ import annotations

import math
from typing import Any, Callable, Dict, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field

Estimator = Callable[[Any], Dict[str, Any]]

IMPACT_FACTOR = 10
SEVERE_IMPACT_FACTOR = 50
SEVERE_CASE_RATE = 0.15
BED_AVAILABILITY_RATE = 0.35
ICU_RATE = 0.05
VENTILATOR_RATE = 0.02
DOUBLING_PERIOD_DAYS = 3

_DAYS_PER_PERIOD = {"days": 1, "weeks": 7, "months": 30}


class Region(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str = ""
    avgAge: float = 0.0
    avgDailyIncomeInUSD: float = Field(ge=0)
    avgDailyIncomePopulation: float = Field(ge=0)


class EstimationInput(BaseModel):
    model_config = ConfigDict(extra="allow")

    region: Region
    periodType: Literal["days", "weeks", "months"] = "days"
    timeToElapse: int = Field(ge=0)
    reportedCases: int = Field(ge=0)
    population: int = Field(default=0, ge=0)
    totalHospitalBeds: int = Field(ge=0)


def normalize_days(period_type: str, time_to_elapse: int) -> int:
    return time_to_elapse * _DAYS_PER_PERIOD[period_type]


def _scenario(data: EstimationInput, factor: int) -> Dict[str, int]:
    days = normalize_days(data.periodType, data.timeToElapse)
    currently_infected = data.reportedCases * factor
    infections = currently_infected * 2 ** (days // DOUBLING_PERIOD_DAYS)
    severe = math.trunc(SEVERE_CASE_RATE * infections)
    beds = math.trunc(BED_AVAILABILITY_RATE * data.totalHospitalBeds - severe)
    if days > 0:
        dollars = math.trunc(
            infections
            * data.region.avgDailyIncomePopulation
            * data.region.avgDailyIncomeInUSD
            / days
        )
    else:
        dollars = 0
    return {
        "currentlyInfected": currently_infected,
        "infectionsByRequestedTime": infections,
        "severeCasesByRequestedTime": severe,
        "hospitalBedsByRequestedTime": beds,
        "casesForICUByRequestedTime": math.trunc(ICU_RATE * infections),
        "casesForVentilatorsByRequestedTime": math.trunc(VENTILATOR_RATE * infections),
        "dollarsInFlight": dollars,
    }


def covid19_estimator(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Project the impact and severe-impact scenarios for ``data``.

    Raises ``pydantic.ValidationError`` when ``data`` is not a valid input.
    """
    parsed = EstimationInput.model_validate(data)
    return {
        "data": dict(data),
        "impact": _scenario(parsed, IMPACT_FACTOR),
        "severeImpact": _scenario(parsed, SEVERE_IMPACT_FACTOR),
    }
