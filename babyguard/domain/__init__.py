"""Framework-agnostic domain models, thresholds and errors."""
