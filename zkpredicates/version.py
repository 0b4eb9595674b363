"""
Version helpers for zkpredicates.

- ``__version__`` is the semantic version for packaging.
- ``PROOF_FORMAT_VERSION`` tags every serialized proof package.
"""

from __future__ import annotations

# Bump this when making a release; use semver (MAJOR.MINOR.PATCH)
__version__ = "0.1.0"

# Wire format of ProofPackage; bump only on incompatible changes.
PROOF_FORMAT_VERSION = "1.0"


def version_info() -> dict:
    return {"version": __version__, "proofFormat": PROOF_FORMAT_VERSION}


__all__ = ["__version__", "PROOF_FORMAT_VERSION", "version_info"]
