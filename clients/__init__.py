"""Front ends for tuisen."""
