"""
Workflow modules of the startup call platform.

Each sub-package follows the same layout:

* ``models.py``    -- frozen dataclass DTOs, status Enums, patch structures
* ``orm.py``       -- SQLAlchemy persistence models with ``to_dto()``
* ``workflows.py`` -- ``Workflow`` state machine definitions
* ``service.py``   -- the module's public operations (flush-only)
"""
