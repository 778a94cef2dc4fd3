"""
Test suite for the expert conversation orchestrator.

Demonstrates testing patterns for the turn pipeline:
- Domain logic tests (routing, tools, interceptor, orchestration)
- Concurrency behavior (confirmations, batches, cancellation)
- Business rule enforcement (abort without partial synthesis)
- Integration tests over the HTTP surface
"""
