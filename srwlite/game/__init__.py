"""Game-level orchestration: roster, scenario sequencing and the running game context."""
