"""Purchase-order follow-up tracker.

Tracks the fulfillment status of purchase orders through timestamped
milestone lines grouped under one tracking document per source order.
"""

__version__ = "1.0.0"
