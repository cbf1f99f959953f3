"""HTTP surface: job triggers and read-only views."""
