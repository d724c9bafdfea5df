"""
Animarc Shared Module

Domain-level foundations for all game modules:
- Domain exceptions and error handling
- BaseService for async orchestration
- RandomSequence for reproducible procedural generation
- Persistence contracts implemented by the repositories
- Gameplay constants

Submodules are imported directly, e.g.
``from animarc.modules.shared.exceptions import InvalidStateError``.
"""
