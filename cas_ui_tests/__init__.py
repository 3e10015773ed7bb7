"""Browser automation and protocol assertion harness for CAS end-to-end scenarios."""

__version__ = "1.0.0"
