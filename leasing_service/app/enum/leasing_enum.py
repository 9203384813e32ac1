from enum import Enum


class LeaseStatus(str, Enum):
    draft = "draft"
    active = "active"
    ended = "ended"
    terminated = "terminated"


class RentIncreaseType(str, Enum):
    none = "none"
    fixed = "fixed"
    percent = "percent"


class ChargeMode(str, Enum):
    fixed = "fixed"
    metered = "metered"
