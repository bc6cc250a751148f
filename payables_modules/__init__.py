"""
Business modules built on the payables kernel.

Each module owns its DTOs (``models.py``), persistence (``orm.py``), state
machines (``workflows.py``), configuration schema (``config.py``) and
orchestrating service (``service.py``).
"""
