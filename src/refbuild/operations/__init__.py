"""Engine operations: commit recording, build index, reference search."""
