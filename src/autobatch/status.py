from enum import Enum


class BatchState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    SETTLED = "settled"


class Membership(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
