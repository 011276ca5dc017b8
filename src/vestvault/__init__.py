"""
vestvault - time-locked asset release schedules.

A sponsor escrows a fixed amount of a fungible asset for a beneficiary, who
withdraws it as it vests along a release curve. Schedules may carry a cliff and
may be revoked by a designated revoker.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
