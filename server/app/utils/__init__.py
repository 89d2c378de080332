from .clock import utcnow
from .quantities import as_quantity, to_cost, to_decimal, to_quantity

__all__ = ["as_quantity", "to_cost", "to_decimal", "to_quantity", "utcnow"]
