import pytest

from txwatch.errors import InvalidParametersError
from txwatch.models.params import TX_PARAM_SCHEMAS, validate_tx_params
from txwatch.transactions.catalog import (
    TRANSACTION_CATALOG, TransactionType, get_gateway_tx_type, get_transaction_config, is_transaction_type
)
from txwatch.utils.cardano import get_transaction_explorer_url, is_tx_hash, short_hash


# Catalog

def test_every_kind_has_config_and_schema():
    for kind in TransactionType:
        assert kind in TRANSACTION_CATALOG
        assert kind in TX_PARAM_SCHEMAS
        assert TRANSACTION_CATALOG[kind].endpoint.startswith("/tx/")


def test_every_kind_is_tracked():
    assert all(config.requires_tracking for config in TRANSACTION_CATALOG.values())


def test_get_transaction_config_by_name():
    config = get_transaction_config("PROJECT_USER_TREASURY_ADD_FUNDS")
    assert config.endpoint == "/tx/project/user/treasury/add-funds"
    assert config.gateway_tx_type == "treasury_fund"


def test_get_transaction_config_rejects_unknown_kind():
    with pytest.raises(ValueError):
        get_transaction_config("COURSE_STUDENT_TELEPORT")


def test_is_transaction_type():
    assert is_transaction_type("INSTANCE_COURSE_CREATE")
    assert not is_transaction_type("instance_course_create")


def test_gateway_tx_type_falls_back_to_lowercase():
    assert get_gateway_tx_type(TransactionType.INSTANCE_COURSE_CREATE) == "course_create"
    assert get_gateway_tx_type("CUSTOM_KIND") == "custom_kind"


# Params

def test_validate_returns_json_body_without_nones():
    body = validate_tx_params(TransactionType.PROJECT_CONTRIBUTOR_TASK_COMMIT, {
        "alias": "bob",
        "project_id": "p" * 56,
        "contributor_state_id": "s" * 56,
        "task_hash": "7" * 64,
        "task_info": "first draft",
    })
    assert body["alias"] == "bob"
    assert "initiator_data" not in body


def test_validate_collects_field_errors():
    with pytest.raises(InvalidParametersError) as exc_info:
        validate_tx_params(TransactionType.COURSE_STUDENT_ASSIGNMENT_COMMIT, {"alias": ""})

    errors = exc_info.value.errors
    assert any(e.startswith("alias:") for e in errors)
    assert any(e.startswith("course_id:") for e in errors)
    assert any(e.startswith("assignment_info:") for e in errors)


def test_validate_reports_nested_paths():
    with pytest.raises(InvalidParametersError) as exc_info:
        validate_tx_params(TransactionType.INSTANCE_COURSE_CREATE, {
            "alias": "owner",
            "teachers": ["owner"],
            "initiator_data": {"used_addresses": "not-a-list", "change_address": "addr_test1"},
        })

    assert any(e.startswith("initiator_data.used_addresses:") for e in exc_info.value.errors)


def test_short_text_limit():
    with pytest.raises(InvalidParametersError):
        validate_tx_params(TransactionType.COURSE_STUDENT_ASSIGNMENT_UPDATE, {
            "alias": "alice",
            "course_id": "c" * 56,
            "assignment_info": "x" * 141,
        })


# Cardano helpers

def test_explorer_url_per_network():
    tx_hash = "ab" * 32
    assert get_transaction_explorer_url(tx_hash, "mainnet") == f"https://cardanoscan.io/transaction/{tx_hash}"
    assert get_transaction_explorer_url(tx_hash, "Preview") == f"https://preview.cardanoscan.io/transaction/{tx_hash}"


def test_tx_hash_helpers():
    tx_hash = "ab" * 32
    assert is_tx_hash(tx_hash)
    assert not is_tx_hash("abc123")
    assert short_hash(tx_hash) == "abababab...abababab"
    assert short_hash("abc123") == "abc123"
