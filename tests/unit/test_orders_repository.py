from decimal import Decimal
from unittest.mock import patch, MagicMock
import pytest

from backend.cart.models import CartLineItem
from backend.errors import UpstreamConfigurationError
from backend.orders import repository as repo
from backend.orders.models import OrderStatus, build_order_row, build_order_item_rows, can_transition

def _client_returning(data):
    """Client Supabase factice: toute chaîne table().x().y().execute() renvoie data."""
    client = MagicMock()
    chain = client.table.return_value
    for name in ("insert", "update", "delete", "select", "eq", "is_", "limit"):
        getattr(chain, name).return_value = chain
    chain.execute.return_value = MagicMock(data=data)
    return client, chain

def test_build_order_row_freezes_amounts():
    row = build_order_row(user_id=None, customer_email="a@b", total_amount=Decimal("270"),
                          currency="inr", delivery_address=None)
    assert row["status"] == "pending"
    assert row["total_amount"] == "270.00"
    assert row["user_id"] is None

def test_build_order_item_rows_snapshots_prices():
    item = CartLineItem(id="p1", name="Tomatoes", price=Decimal("45"), quantity=2, unit="kg",
                        farmer={"name": "Ramesh", "location": "Nashik"})
    (row,) = build_order_item_rows("o1", [item])
    assert row["order_id"] == "o1"
    assert row["price"] == "45.00"
    assert row["subtotal"] == "90.00"
    assert row["quantity"] == 2

def test_status_transitions_only_from_pending():
    assert can_transition(OrderStatus.PENDING, OrderStatus.PAID)
    assert can_transition(OrderStatus.PENDING, OrderStatus.FAILED)
    assert not can_transition(OrderStatus.PAID, OrderStatus.FAILED)
    assert not can_transition(OrderStatus.FAILED, OrderStatus.PAID)

def test_insert_order_returns_created_row():
    client, chain = _client_returning([{"id": "o1", "status": "pending"}])
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        result = repo.insert_order({"status": "pending"})
    client.table.assert_called_once_with("orders")
    chain.insert.assert_called_once_with({"status": "pending"})
    assert result == {"id": "o1", "status": "pending"}

def test_insert_order_failure_returns_none():
    with patch("backend.infra.supabase_client.get_service_supabase", side_effect=Exception("db down")):
        assert repo.insert_order({"status": "pending"}) is None

def test_insert_order_missing_configuration_is_raised():
    with patch("backend.infra.supabase_client.get_service_supabase",
               side_effect=UpstreamConfigurationError("no url")):
        with pytest.raises(UpstreamConfigurationError):
            repo.insert_order({"status": "pending"})

def test_insert_order_items_single_batch():
    rows = [{"order_id": "o1", "product_id": "p1"}, {"order_id": "o1", "product_id": "p2"}]
    client, chain = _client_returning(rows)
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        assert repo.insert_order_items(rows) == rows
    client.table.assert_called_once_with("order_items")
    chain.insert.assert_called_once_with(rows)

def test_insert_order_items_failure_returns_none():
    with patch("backend.infra.supabase_client.get_service_supabase", side_effect=Exception("boom")):
        assert repo.insert_order_items([{"order_id": "o1"}]) is None

def test_delete_order():
    client, chain = _client_returning([])
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        assert repo.delete_order("o1") is True
    chain.eq.assert_called_once_with("id", "o1")
    with patch("backend.infra.supabase_client.get_service_supabase", side_effect=Exception("boom")):
        assert repo.delete_order("o1") is False

def test_link_session_only_when_unset():
    client, chain = _client_returning([{"id": "o1"}])
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        assert repo.link_session("o1", "cs_1") is True
    chain.is_.assert_called_once_with("stripe_session_id", "null")
    assert chain.update.call_args[0][0]["stripe_session_id"] == "cs_1"

def test_link_session_already_linked_returns_false():
    client, _ = _client_returning([])
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        assert repo.link_session("o1", "cs_2") is False

def test_transition_status_is_conditional_on_pending():
    client, chain = _client_returning([{"id": "o1", "status": "paid"}])
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        rows = repo.transition_status("o1", OrderStatus.PAID)
    assert rows == [{"id": "o1", "status": "paid"}]
    assert chain.update.call_args[0][0]["status"] == "paid"
    assert "updated_at" in chain.update.call_args[0][0]
    chain.eq.assert_any_call("id", "o1")
    chain.eq.assert_any_call("status", "pending")

def test_transition_status_no_match_vs_error():
    client, _ = _client_returning([])
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        assert repo.transition_status("o1", OrderStatus.FAILED) == []
    with patch("backend.infra.supabase_client.get_service_supabase", side_effect=Exception("timeout")):
        assert repo.transition_status("o1", OrderStatus.FAILED) is None

def test_fetch_order_with_items_embeds_lines():
    client, chain = _client_returning([{"id": "o1", "order_items": [{"product_id": "p1"}]}])
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        order = repo.fetch_order_with_items("o1")
    chain.select.assert_called_once_with("*, order_items(*)")
    assert order["order_items"] == [{"product_id": "p1"}]

def test_fetch_order_with_items_retries_once():
    client, chain = _client_returning([{"id": "o1"}])
    chain.execute.side_effect = [Exception("reset"), MagicMock(data=[{"id": "o1"}])]
    with patch("backend.infra.supabase_client.get_service_supabase", return_value=client):
        assert repo.fetch_order_with_items("o1") == {"id": "o1"}
    assert chain.execute.call_count == 2

def test_fetch_order_with_items_gives_up_after_retry():
    with patch("backend.infra.supabase_client.get_service_supabase", side_effect=Exception("down")) as mocked:
        assert repo.fetch_order_with_items("o1") is None
    assert mocked.call_count == 2
