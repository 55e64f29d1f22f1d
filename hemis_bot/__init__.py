"""HEMIS employee directory and birthday notification bot for Slack."""
