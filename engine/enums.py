"""
Enumerations for Severity, Event Categories, Trends, and Significance

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from enum import Enum

from config import SEVERITY_WEIGHTS


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

    def weight(self) -> int:
        return SEVERITY_WEIGHTS[self.value]


class EventCategory(str, Enum):
    error = "error"
    warning = "warning"
    deployment = "deployment"
    info = "info"


class Trend(str, Enum):
    increasing = "increasing"
    stable = "stable"
    decreasing = "decreasing"


class Significance(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
