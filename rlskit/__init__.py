"""rlskit - Rust toolchain provisioning and RLS supervision."""

__version__ = "0.1.0"
