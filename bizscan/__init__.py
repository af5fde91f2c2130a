"""Business registration certificate scanning pipeline."""
