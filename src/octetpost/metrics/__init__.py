from .metrics import TransferMetrics, TransferStats

__all__ = ["TransferMetrics", "TransferStats"]
