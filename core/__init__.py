"""EdgeGuard core — hardware fingerprinting and drift detection."""

from importlib.metadata import version as _pkg_version

try:
    __version__: str = _pkg_version("edgeguard")
except Exception:
    __version__ = "dev"
