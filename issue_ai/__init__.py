"""Topic classification client for the issue builder."""
