"""ORM models."""

from custody_gate.models.audit import AuditLog
from custody_gate.models.custody import Anomaly, CustodySession
from custody_gate.models.holder import Holder
from custody_gate.models.item import HolderItem, Item
from custody_gate.models.operator import Operator
from custody_gate.models.token import OperatorToken, TokenRecord

__all__ = [
    "Anomaly",
    "AuditLog",
    "CustodySession",
    "Holder",
    "HolderItem",
    "Item",
    "Operator",
    "OperatorToken",
    "TokenRecord",
]
