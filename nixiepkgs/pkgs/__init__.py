"""Package definitions: the base catalog and the Rust toolchain overlay."""
