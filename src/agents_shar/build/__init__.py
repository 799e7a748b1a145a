"""Archive, checksum and manifest generation."""
