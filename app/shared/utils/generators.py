"""Primary key generation for workflow rows."""

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """New CUID2 string, used for every workflow, step, version, instance and approval id."""
    return str(_next_cuid())
