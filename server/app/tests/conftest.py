import pytest

from app.auth import get_ledger_context
from app.inventory.context import LedgerContext
from app.main import app


@pytest.fixture(autouse=True)
def override_ledger_context(request):
    if request.node.get_closest_marker("real_auth"):
        yield
        return

    app.dependency_overrides[get_ledger_context] = lambda: LedgerContext(tenant_id=1, actor_id=1)
    yield
    app.dependency_overrides.pop(get_ledger_context, None)
