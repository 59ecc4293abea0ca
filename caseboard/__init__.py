"""Case pipeline boards with escalation lanes, trash lifecycle and inbound email routing."""
