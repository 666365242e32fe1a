"""Chaos Story — a narrative state engine for collaborative branching stories."""
