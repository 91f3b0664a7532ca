"""Record types for the print-order tables."""
