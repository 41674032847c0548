"""
ccx exceptions
"""


class CcxError(Exception):
    """Base exception for ccx"""
    pass


class RateLookupError(CcxError):
    """Rates could not be resolved for a base currency"""
    pass


class RateFetchError(RateLookupError):
    """Upstream rate API returned an error or an unexpected payload"""
    pass


class StoreError(CcxError):
    """Persistent store could not be read or written"""
    pass


class SnapshotError(CcxError):
    """Document snapshot has an invalid shape"""
    pass
