"""
Animarc Test Suite
==================

Test Organization
-----------------
- tests/unit/          : Fast unit tests on the pure engines and services over in-memory stores
- tests/integration/   : SQL stores and full service flows on an in-memory SQLite database

Testing Philosophy
------------------
- Unit tests: Fast, isolated, test game rules
- Integration tests: Slower, test real persistence behaviour (versions, unique keys, caps)
- Use pytest markers to categorize and selectively run tests
- Follow AAA pattern: Arrange, Act, Assert
"""
