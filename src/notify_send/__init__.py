"""Per-recipient delivery worker for bulk bot notifications."""
