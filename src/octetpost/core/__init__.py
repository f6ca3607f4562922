"""Transfer orchestration core: buffers, policy, transport boundary and engine."""
