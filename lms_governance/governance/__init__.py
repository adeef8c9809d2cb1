"""
Governance authorization engine.

Declarative per-operation requirements (requirement.py, config.py), the
ordered policy evaluator (evaluator.py), read-only capability lookups
(store.py) and the append-only violation audit trail (audit.py).

Nothing here depends on FastAPI; see lms_governance.security.dependencies for
the request integration. Import from the submodules directly: the ORM models
import governance.enums, so this package stays import-free.
"""
