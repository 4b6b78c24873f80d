"""
Cost event enumeration.

Each itemized charge attached to a trip has one of these kinds.
"""

import enum


class CostEventType(str, enum.Enum):
    """
    Cost event kinds.
    
    Types:
        FAST_TAG: Toll / fast-tag deduction
        MCD: Municipal levy (municipal corporation entry charge)
        GREEN_TAX: Green (environment) tax
        REPAIR: Breakdown or repair expense
        RTO: Regional transport office checkpoint payment
        DTO: District transport office checkpoint payment
        MUNICIPALITIES: Municipality checkpoint payment
        BORDER: State border checkpoint payment
    """
    FAST_TAG = "FAST_TAG"
    MCD = "MCD"
    GREEN_TAX = "GREEN_TAX"
    REPAIR = "REPAIR"
    RTO = "RTO"
    DTO = "DTO"
    MUNICIPALITIES = "MUNICIPALITIES"
    BORDER = "BORDER"


# Checkpoint authority payments ("split commission")
COMMISSION_EVENT_TYPES = (
    CostEventType.RTO,
    CostEventType.DTO,
    CostEventType.MUNICIPALITIES,
    CostEventType.BORDER,
)
