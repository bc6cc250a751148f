"""The payables-reconcile command against a file-backed database."""

from decimal import Decimal
from io import StringIO

import pytest
from sqlalchemy import update

from payables_kernel.db.engine import create_tables, get_session, init_engine_from_url, reset_engine
from payables_kernel.models.creditor import Creditor
from payables_kernel.services.creditor_service import CreditorService
from payables_kernel.services.product_service import ProductService
from payables_modules.purchasing import InitialPayment, LineItemInput, PurchaseOrderService
from payables_services.reconcile_cli import main


@pytest.fixture
def database_url(tmp_path, clock, actor_id):
    """A database holding one part-paid order."""
    url = f"sqlite:///{tmp_path / 'ledger.db'}"
    init_engine_from_url(url)
    create_tables()
    session = get_session()
    try:
        supplier = CreditorService(session, clock).create_creditor("Kisumu Steel", actor_id)
        variant = ProductService(session, clock).create_variant("RBAR-12", "Rebar 12mm", actor_id)
        session.commit()
        PurchaseOrderService(session, clock=clock).create_order(
            creditor_id=supplier.id,
            items=[LineItemInput(variant.id, Decimal("20"), Decimal("75"))],
            actor_id=actor_id,
            initial_payment=InitialPayment(Decimal("500")),
        )
    finally:
        session.close()
        reset_engine()
    return url


def _tamper_balance(url):
    init_engine_from_url(url)
    session = get_session()
    try:
        session.execute(update(Creditor).values(outstanding_balance=Decimal("5")))
        session.commit()
    finally:
        session.close()
        reset_engine()


def _run(*argv):
    out = StringIO()
    code = main(list(argv), out=out)
    return code, out.getvalue()


def test_clean_ledger_exits_zero(database_url):
    code, output = _run("--database-url", database_url)

    assert code == 0
    assert "Orders checked:    1" in output
    assert "No violations." in output


def test_drifted_balance_exits_one(database_url):
    _tamper_balance(database_url)

    code, output = _run("--database-url", database_url)

    assert code == 1
    assert "[balance_equals_ledger]" in output
    assert "expected 1000" in output


def test_repair_fixes_drift(database_url, actor_id):
    _tamper_balance(database_url)

    code, output = _run("--database-url", database_url, "--repair", "--actor-id", str(actor_id))

    assert code == 0
    assert "Repaired creditor" in output
    assert "No violations." in output
    assert _run("--database-url", database_url)[0] == 0


def test_database_url_from_environment(database_url, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", database_url)

    assert _run()[0] == 0
