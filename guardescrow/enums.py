from enum import Enum


class EscrowState(str, Enum):
    CREATED = "CREATED"
    FUNDED = "FUNDED"
    RELEASED = "RELEASED"
    REFUNDED = "REFUNDED"
    CANCELLED = "CANCELLED"


class Action(str, Enum):
    CREATE = "create"
    FUND = "fund"
    RELEASE = "release"
    REFUND = "refund"
    CANCEL = "cancel"
