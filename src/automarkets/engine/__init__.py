"""Market lifecycle engine: rotation, milestones, pairing, building and resolution."""
