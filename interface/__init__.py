"""
Interface package: communication with an external UCI analysis engine.

Modules:
    constants — Engine command, variant, default depth, timeouts
    protocol  — Line buffering and pending-request state machines (no I/O)
    uci       — UciBridge: asyncio subprocess owner, handshake and analysis
"""
