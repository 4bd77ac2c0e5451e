"""Domain logic of the generation-to-persistence pipeline."""
