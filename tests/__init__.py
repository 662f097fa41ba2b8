"""
autoclick Tutorial Test Suite
=============================

Test Organization
-----------------
- tests/unit/          : Fast unit tests with in-memory fakes (no external dependencies)
- tests/fakes.py       : In-memory scenario store and detection engine

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test coordinator rules and domain logic
- Host-owned ports (scenario store, detection engine) are faked, never mocked
  call-by-call, so tests assert on observable state
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
