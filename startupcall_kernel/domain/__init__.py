"""Pure domain value objects: clock, actor context, workflow definitions."""
