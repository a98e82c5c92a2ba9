import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from compliance_hub.core.form_schema_check import check_form_schema
from compliance_hub.main import app
from compliance_hub.models.disclosure_form_template import DisclosureFormTemplate
from compliance_hub.schemas.disclosure_forms import FormTemplateCreate
from tests.helpers import API, auth, create_form_template, create_officer, create_org, text_field

OFFICER = "officer@acme.test"


def _create(client, **body):
    payload = {"name": "Schema Test", "disclosure_type": "CUSTOM"}
    payload.update(body)
    return client.post(API, headers=auth(OFFICER), json=payload)


def _codes(issues):
    return sorted(i["code"] for i in issues)


# ---------------------------------------------------------------------------
# structural checks at the API boundary
# ---------------------------------------------------------------------------


def test_every_field_type_is_accepted(db_session):
    create_officer(db_session)

    fields = [
        text_field("name"),
        {"id": "f2", "type": "TEXTAREA", "key": "notes", "label": "Notes", "validation": {"max_length": 2000}},
        {"id": "f3", "type": "NUMBER", "key": "count", "label": "Count", "validation": {"min": 0, "max": 10}},
        {"id": "f4", "type": "DATE", "key": "date", "label": "Date"},
        {"id": "f5", "type": "DATETIME", "key": "at", "label": "At"},
        {
            "id": "f6",
            "type": "DROPDOWN",
            "key": "country",
            "label": "Country",
            "config": {"options": [{"value": "US", "label": "United States"}, {"value": "CA", "label": "Canada"}]},
        },
        {
            "id": "f7",
            "type": "MULTI_SELECT",
            "key": "region",
            "label": "Region",
            "config": {
                "options": [{"value": "TX", "label": "Texas", "parent_value": "US"}],
                "cascade_from": "country",
            },
        },
        {"id": "f8", "type": "CHECKBOX", "key": "agree", "label": "Agree"},
        {"id": "f9", "type": "RADIO", "key": "choice", "label": "Choice", "config": {"options": []}},
        {
            "id": "f10",
            "type": "FILE_UPLOAD",
            "key": "receipt",
            "label": "Receipt",
            "config": {"allowed_types": ["application/pdf"], "max_size_bytes": 1048576, "max_files": 3},
        },
        {
            "id": "f11",
            "type": "RELATIONSHIP_MAPPER",
            "key": "relatives",
            "label": "Relatives",
            "config": {"relationship_types": ["spouse", "sibling"], "allow_multiple": True},
        },
        {
            "id": "f12",
            "type": "DOLLAR_THRESHOLD",
            "key": "value",
            "label": "Value",
            "config": {"threshold_warning": 100, "threshold_block": 500},
        },
        {
            "id": "f13",
            "type": "RECURRING_DATE",
            "key": "renewal",
            "label": "Renewal",
            "config": {"recurrence_type": "annual"},
        },
        {
            "id": "f14",
            "type": "ENTITY_LOOKUP",
            "key": "vendor",
            "label": "Vendor",
            "config": {"entity_type": "vendor", "search_fields": ["name"], "display_template": "{{name}}"},
        },
        {"id": "f15", "type": "SIGNATURE_CAPTURE", "key": "signature", "label": "Signature", "required": True},
        {"id": "f16", "type": "ATTESTATION", "key": "attest", "label": "I attest"},
        {"id": "f17", "type": "CURRENCY", "key": "amount", "label": "Amount", "config": {"currency": "EUR"}},
        {"id": "f18", "type": "PERCENTAGE", "key": "ownership", "label": "Ownership %"},
    ]

    client = TestClient(app)
    r = _create(client, fields=fields)
    assert r.status_code == 201
    assert len(r.json()["fields"]) == 18
    assert r.json()["fields"][16]["config"]["currency"] == "EUR"


def test_config_must_match_field_type(db_session):
    create_officer(db_session)

    client = TestClient(app)
    r = _create(
        client,
        fields=[{"id": "f1", "type": "TEXT", "key": "name", "label": "Name", "config": {"threshold_warning": 10}}],
    )
    assert r.status_code == 422

    r = _create(
        client,
        fields=[{"id": "f1", "type": "ENTITY_LOOKUP", "key": "v", "label": "Vendor", "config": {"entity_type": "car"}}],
    )
    assert r.status_code == 422


def test_unknown_field_type_is_rejected(db_session):
    create_officer(db_session)

    client = TestClient(app)
    r = _create(client, fields=[{"id": "f1", "type": "COLOR_PICKER", "key": "c", "label": "Colour"}])
    assert r.status_code == 422


def test_repeaters_nest_two_levels_only(db_session):
    create_officer(db_session)

    client = TestClient(app)
    two_levels = {
        "id": "s1",
        "title": "Gifts",
        "fields": ["f_giver", "f_items"],
        "repeater": {
            "max_items": 10,
            "nested_repeaters": [{"field_id": "f_items", "config": {"max_items": 5}}],
        },
    }
    r = _create(client, fields=[text_field("giver"), text_field("items")], sections=[two_levels])
    assert r.status_code == 201

    three_levels = {
        "id": "s1",
        "title": "Gifts",
        "fields": ["f_items"],
        "repeater": {
            "nested_repeaters": [
                {
                    "field_id": "f_items",
                    "config": {"nested_repeaters": [{"field_id": "f_items", "config": {}}]},
                }
            ],
        },
    }
    r = _create(client, name="Too Deep", fields=[text_field("items")], sections=[three_levels])
    assert r.status_code == 422


def test_structural_bounds():
    with pytest.raises(ValidationError):
        FormTemplateCreate(
            name="X",
            disclosure_type="GIFT",
            sections=[{"id": "s1", "title": "S", "repeater": {"min_items": 5, "max_items": 2}}],
        )

    with pytest.raises(ValidationError):
        FormTemplateCreate(
            name="X",
            disclosure_type="GIFT",
            fields=[
                {
                    "id": "f1",
                    "type": "DOLLAR_THRESHOLD",
                    "key": "v",
                    "label": "V",
                    "config": {"threshold_warning": 900, "threshold_block": 100},
                }
            ],
        )

    with pytest.raises(ValidationError):
        FormTemplateCreate(
            name="X",
            disclosure_type="GIFT",
            fields=[{"id": "f1", "type": "TEXT", "key": "v", "label": "V", "validation": {"pattern": "("}}],
        )

    with pytest.raises(ValidationError):
        FormTemplateCreate(
            name="X",
            disclosure_type="GIFT",
            fields=[
                {
                    "id": "f1",
                    "type": "DROPDOWN",
                    "key": "v",
                    "label": "V",
                    "config": {"options": [{"value": "a", "label": "A"}, {"value": "a", "label": "Again"}]},
                }
            ],
        )


def test_duplicate_keys_and_ids_are_rejected(db_session):
    create_officer(db_session)

    client = TestClient(app)
    r = _create(client, fields=[text_field("giver", field_id="f1"), text_field("giver", field_id="f2")])
    assert r.status_code == 422
    assert "Duplicate field keys" in r.text

    r = _create(client, fields=[text_field("a", field_id="f1"), text_field("b", field_id="f1")])
    assert r.status_code == 422

    r = _create(client, sections=[{"id": "s1", "title": "A"}, {"id": "s1", "title": "B"}])
    assert r.status_code == 422


def test_conditional_round_trips_with_if_key(db_session):
    create_officer(db_session)

    client = TestClient(app)
    r = _create(
        client,
        fields=[
            {"id": "f1", "type": "CHECKBOX", "key": "has_gift", "label": "Any gifts?"},
            {
                "id": "f2",
                "type": "TEXT",
                "key": "giver",
                "label": "Giver",
                "conditionals": [
                    {"if": {"field": "has_gift", "operator": "eq", "value": True}, "then": {"show": True, "require": True}}
                ],
            },
        ],
    )
    assert r.status_code == 201
    cond = r.json()["fields"][1]["conditionals"][0]
    assert cond["if"] == {"field": "has_gift", "operator": "eq", "value": True}
    assert cond["then"]["require"] is True


def test_update_validates_schema(db_session):
    officer = create_officer(db_session)
    t = create_form_template(db_session, org=create_org(db_session), created_by=officer)

    client = TestClient(app)
    r = client.put(
        f"{API}/{t.id}",
        headers=auth(OFFICER),
        json={"fields": [{"id": "f1", "type": "TEXT", "key": "x", "label": "X", "bogus": 1}]},
    )
    assert r.status_code == 422


# ---------------------------------------------------------------------------
# semantic check (advisory)
# ---------------------------------------------------------------------------


def _template(**content) -> DisclosureFormTemplate:
    return DisclosureFormTemplate(
        name="T",
        disclosure_type="CUSTOM",
        fields=content.get("fields", []),
        sections=content.get("sections", []),
        calculated_fields=content.get("calculated_fields"),
        validation_rules=content.get("validation_rules"),
    )


def test_clean_schema_has_no_issues():
    t = _template(
        fields=[text_field("giver"), text_field("value")],
        sections=[{"id": "s1", "title": "S", "fields": ["f_giver", "f_value"]}],
        calculated_fields=[{"id": "c1", "key": "total", "expression": "SUM(value)", "dependencies": ["value"]}],
        validation_rules=[
            {
                "id": "r1",
                "name": "R",
                "condition": {"left": "total", "operator": "lt", "right": "500"},
                "error_message": "Too much",
            }
        ],
    )
    assert check_form_schema(t) == ([], [])


def test_unknown_references_are_errors():
    t = _template(
        fields=[
            text_field(
                "giver",
                conditionals=[{"if": {"field": "missing", "operator": "is_empty"}, "then": {"hide": True}}],
            ),
            {
                "id": "f_region",
                "type": "DROPDOWN",
                "key": "region",
                "label": "Region",
                "config": {"options": [], "cascade_from": "nowhere"},
            },
        ],
        sections=[
            {
                "id": "s1",
                "title": "S",
                "fields": ["f_giver", "f_ghost"],
                "conditional": {"if": {"field": "ghost", "operator": "eq", "value": 1}, "then": {"show": True}},
            }
        ],
        calculated_fields=[{"id": "c1", "key": "total", "expression": "x", "dependencies": ["nope"]}],
    )
    errors, warnings = check_form_schema(t)
    assert _codes(errors) == ["unknown_field", "unknown_key", "unknown_key", "unknown_key", "unknown_key"]
    assert {e["path"] for e in errors} == {
        "fields[0].conditionals[0].if.field",
        "fields[1].config.cascade_from",
        "sections[0].fields[1]",
        "sections[0].conditional.if.field",
        "calculated_fields[0].dependencies[0]",
    }
    assert warnings == []


def test_calculated_key_clash_and_cycle():
    t = _template(
        fields=[text_field("giver")],
        calculated_fields=[
            {"id": "c1", "key": "giver", "expression": "x"},
            {"id": "c2", "key": "a", "expression": "b + 1", "dependencies": ["b"]},
            {"id": "c3", "key": "b", "expression": "a + 1", "dependencies": ["a"]},
        ],
    )
    errors, _ = check_form_schema(t)
    assert "duplicate_key" in _codes(errors)
    cycles = [e for e in errors if e["code"] == "dependency_cycle"]
    assert len(cycles) == 1
    assert cycles[0]["message"] == "Dependency cycle: a -> b -> a"


def test_long_calculated_chain():
    n = 2000
    chain = [
        {"id": f"c{i}", "key": f"k{i}", "expression": f"k{i + 1}", "dependencies": [f"k{i + 1}"]}
        for i in range(n - 1)
    ]
    chain.append({"id": f"c{n - 1}", "key": f"k{n - 1}", "expression": "1", "dependencies": []})
    assert check_form_schema(_template(calculated_fields=chain)) == ([], [])

    chain[-1]["dependencies"] = ["k0"]
    errors, _ = check_form_schema(_template(calculated_fields=chain))
    assert _codes(errors) == ["dependency_cycle"]
    assert errors[0]["message"].startswith("Dependency cycle: k0 -> k1 -> k2")
    assert errors[0]["message"].endswith(f"k{n - 1} -> k0")


def test_repeater_references():
    t = _template(
        fields=[text_field("item"), text_field("value")],
        sections=[
            {
                "id": "s1",
                "title": "Gifts",
                "fields": ["f_item", "f_value"],
                "repeater": {
                    "aggregate": [{"function": "SUM", "source_field": "value", "target_field": "gift_total"}],
                    "nested_repeaters": [
                        {
                            "field_id": "f_other",
                            "config": {
                                "aggregate": [{"function": "COUNT", "source_field": "ghost", "target_field": "item"}]
                            },
                        }
                    ],
                },
            }
        ],
    )
    errors, warnings = check_form_schema(t)
    assert {e["path"] for e in errors} == {
        "sections[0].repeater.nested_repeaters[0].field_id",
        "sections[0].repeater.nested_repeaters[0].config.aggregate[0].source_field",
    }
    assert [w["code"] for w in warnings] == ["unbound_target"]


def test_duplicate_placement_and_rule_operand_warn():
    t = _template(
        fields=[text_field("giver")],
        sections=[
            {"id": "s1", "title": "A", "fields": ["f_giver"]},
            {"id": "s2", "title": "B", "fields": ["f_giver"]},
        ],
        validation_rules=[
            {
                "id": "r1",
                "name": "R",
                "condition": {"left": "SUM(gifts.value)", "operator": "gt", "right": "0"},
                "error_message": "x",
            }
        ],
    )
    errors, warnings = check_form_schema(t)
    assert errors == []
    assert _codes(warnings) == ["duplicate_placement", "unknown_key"]


def test_schema_check_endpoint(db_session):
    officer = create_officer(db_session)
    t = create_form_template(
        db_session,
        org=create_org(db_session),
        created_by=officer,
        sections=[{"id": "s1", "title": "S", "fields": ["f_missing"]}],
    )
    ok = create_form_template(db_session, org=create_org(db_session), created_by=officer, name="Clean")

    client = TestClient(app)
    r = client.get(f"{API}/{t.id}/schema-check", headers=auth(OFFICER))
    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is False
    assert body["errors"] == [
        {"path": "sections[0].fields[0]", "code": "unknown_field", "message": "Section references unknown field id 'f_missing'"}
    ]

    r = client.get(f"{API}/{ok.id}/schema-check", headers=auth(OFFICER))
    assert r.json() == {"valid": True, "errors": [], "warnings": []}

    # advisory only: an invalid schema still publishes
    assert client.post(f"{API}/{t.id}/publish", headers=auth(OFFICER)).status_code == 200
