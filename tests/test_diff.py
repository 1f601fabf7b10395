"""Tests for the schema diff."""

import copy

from qbdev.models.app_schema import Application
from qbdev.schema.validator import apply_defaults
from qbdev.store import parse_document
from qbdev.sync.diff import ChangeType, compare_objects, diff


def _make_app_doc(**overrides) -> dict:
    """Build a valid app document with two tables, reports and a webhook."""
    data = {
        "id": "bqapp",
        "name": "CRM",
        "description": "Customer tracking",
        "tables": [
            {
                "id": "bqcontacts",
                "name": "Contacts",
                "singleRecordName": "Contact",
                "pluralRecordName": "Contacts",
                "fields": [
                    {"id": 6, "label": "Name", "fieldType": "text", "required": True},
                    {"id": 7, "label": "Email", "fieldType": "email", "unique": True},
                ],
                "reports": [
                    {"name": "All Contacts", "type": "table", "query": {"select": [6, 7]}},
                ],
            },
            {
                "id": "bqcompanies",
                "name": "Companies",
                "fields": [{"id": 6, "label": "Company Name", "fieldType": "text"}],
            },
        ],
        "webhooks": [
            {
                "name": "Notify",
                "tableId": "bqcontacts",
                "eventTypes": ["create"],
                "url": "https://hooks.example.com/notify",
            }
        ],
    }
    data.update(overrides)
    return data


def _app(doc: dict) -> Application:
    return parse_document("test", doc)


def _keys(entities, attr="name"):
    return sorted(getattr(e, attr) for e in entities)


# --- compare_objects ---


def test_compare_objects_classifies_keys():
    changes = compare_objects({"a": 1, "b": 2, "c": 3}, {"b": 2, "c": 4, "d": 5})
    assert changes["a"].type == ChangeType.ADDED
    assert changes["a"].value == 1
    assert changes["c"].type == ChangeType.MODIFIED
    assert (changes["c"].local, changes["c"].remote) == (3, 4)
    assert changes["d"].type == ChangeType.REMOVED
    assert changes["d"].value == 5
    assert "b" not in changes


def test_compare_objects_ignores_keys():
    changes = compare_objects({"id": 1, "fields": [1]}, {"id": 2, "fields": []}, ignore=["id", "fields"])
    assert changes == {}


def test_compare_objects_sequences_are_order_sensitive():
    changes = compare_objects({"eventTypes": ["create", "update"]}, {"eventTypes": ["update", "create"]})
    assert changes["eventTypes"].type == ChangeType.MODIFIED


def test_compare_objects_mappings_compare_structurally():
    changes = compare_objects({"properties": {"a": 1, "b": 2}}, {"properties": {"b": 2, "a": 1}})
    assert changes == {}


def test_compare_objects_true_is_not_one():
    changes = compare_objects({"x": True}, {"x": 1})
    assert changes["x"].type == ChangeType.MODIFIED


def test_default_equivalence_requires_defaulted_forms():
    field = {"label": "Email", "fieldType": "email"}
    explicit = dict(field, required=False)

    # Raw forms disagree on the key set...
    assert "required" in compare_objects(explicit, field)

    # ...defaulted forms do not.
    doc = {"name": "A", "tables": [{"name": "T", "fields": [field]}]}
    doc_explicit = {"name": "A", "tables": [{"name": "T", "fields": [explicit]}]}
    defaulted = apply_defaults(doc)["tables"][0]["fields"][0]
    defaulted_explicit = apply_defaults(doc_explicit)["tables"][0]["fields"][0]
    assert compare_objects(defaulted_explicit, defaulted) == {}


# --- diff ---


def test_diff_is_reflexive():
    app = _app(_make_app_doc())
    delta = diff(app, app)

    assert not delta.has_changes
    assert delta.app == {}
    assert delta.tables.added == delta.tables.removed == delta.tables.modified == []
    assert delta.fields == {}
    assert delta.reports == {}
    assert delta.webhooks.added == delta.webhooks.removed == delta.webhooks.modified == []
    assert delta.summary() == "No differences"


def test_diff_is_antisymmetric():
    a_doc = _make_app_doc()
    b_doc = copy.deepcopy(a_doc)
    b_doc["tables"][0]["fields"].pop()  # Email only in A
    b_doc["tables"][0]["fields"].append({"label": "Phone", "fieldType": "phone"})
    b_doc["tables"][0]["reports"] = [{"name": "Recent", "type": "table", "query": {}}]
    b_doc["tables"].pop()  # Companies only in A
    b_doc["tables"].append({"name": "Deals", "fields": []})
    b_doc["webhooks"] = [
        {"name": "Audit", "tableId": "bqcontacts", "eventTypes": ["delete"], "url": "https://x.test"}
    ]
    a, b = _app(a_doc), _app(b_doc)

    ab, ba = diff(a, b), diff(b, a)

    assert _keys(ab.tables.added) == _keys(ba.tables.removed) == ["Companies"]
    assert _keys(ab.tables.removed) == _keys(ba.tables.added) == ["Deals"]
    assert _keys(ab.fields["Contacts"].added, "label") == ["Email"]
    assert _keys(ba.fields["Contacts"].removed, "label") == ["Email"]
    assert _keys(ab.fields["Contacts"].removed, "label") == ["Phone"]
    assert _keys(ba.fields["Contacts"].added, "label") == ["Phone"]
    assert _keys(ab.reports["Contacts"].added) == _keys(ba.reports["Contacts"].removed)
    assert _keys(ab.reports["Contacts"].removed) == _keys(ba.reports["Contacts"].added)
    assert _keys(ab.webhooks.added) == _keys(ba.webhooks.removed) == ["Notify"]
    assert _keys(ab.webhooks.removed) == _keys(ba.webhooks.added) == ["Audit"]


def test_app_property_changes():
    local = _app(_make_app_doc(timeZone="US/Pacific", variables={"env": "prod"}))
    remote = _app(_make_app_doc())
    delta = diff(local, remote)

    assert set(delta.app) == {"timeZone", "variables"}
    assert delta.app["timeZone"].local == "US/Pacific"
    assert delta.app["timeZone"].remote == "US/Eastern"
    assert not delta.tables.has_changes


def test_ids_are_not_compared():
    local_doc = _make_app_doc()
    for table in local_doc["tables"]:
        table.pop("id")
        for field in table["fields"]:
            field.pop("id")
    local_doc.pop("id")

    delta = diff(_app(local_doc), _app(_make_app_doc()))
    assert not delta.has_changes


def test_modified_field_detected():
    local_doc = _make_app_doc()
    local_doc["tables"][0]["fields"][1]["unique"] = False
    delta = diff(_app(local_doc), _app(_make_app_doc()))

    assert _keys(delta.tables.modified) == ["Contacts"]
    table_change = delta.tables.modified[0]
    assert table_change.changes == {}
    fields = delta.fields["Contacts"]
    assert fields.added == [] and fields.removed == []
    assert [m.key for m in fields.modified] == ["Email"]
    assert fields.modified[0].changes["unique"].local is False
    assert fields.modified[0].changes["unique"].remote is True
    assert "Companies" not in delta.fields


def test_table_property_change_marks_table_modified():
    local_doc = _make_app_doc()
    local_doc["tables"][1]["description"] = "Firms we work with"
    delta = diff(_app(local_doc), _app(_make_app_doc()))

    assert _keys(delta.tables.modified) == ["Companies"]
    assert delta.tables.modified[0].changes["description"].type == ChangeType.MODIFIED
    assert not delta.fields["Companies"].has_changes


def test_unchanged_tables_not_listed():
    local_doc = _make_app_doc()
    local_doc["tables"][0]["fields"].append({"label": "Phone", "fieldType": "phone"})
    delta = diff(_app(local_doc), _app(_make_app_doc()))

    assert _keys(delta.tables.modified) == ["Contacts"]
    assert set(delta.fields) == {"Contacts"}
    assert set(delta.reports) == {"Contacts"}


def test_remote_only_report_is_removed():
    remote_doc = _make_app_doc()
    remote_doc["tables"][0]["reports"].append(
        {"name": "Recent Contacts", "type": "table", "query": {"where": "{7.OAF.'7 days'}"}}
    )
    delta = diff(_app(_make_app_doc()), _app(remote_doc))

    reports = delta.reports["Contacts"]
    assert _keys(reports.removed) == ["Recent Contacts"]
    assert reports.added == [] and reports.modified == []


def test_report_query_change():
    local_doc = _make_app_doc()
    local_doc["tables"][0]["reports"][0]["query"]["select"] = [7, 6]
    delta = diff(_app(local_doc), _app(_make_app_doc()))

    modified = delta.reports["Contacts"].modified
    assert [m.key for m in modified] == ["All Contacts"]
    assert set(modified[0].changes) == {"query"}


def test_reports_absent_on_both_sides():
    local_doc = _make_app_doc()
    remote_doc = _make_app_doc()
    local_doc["tables"][0].pop("reports")
    remote_doc["tables"][0].pop("reports")
    assert not diff(_app(local_doc), _app(remote_doc)).has_changes


def test_field_type_change_is_reported():
    local_doc = _make_app_doc()
    local_doc["tables"][0]["fields"][1]["fieldType"] = "text"
    delta = diff(_app(local_doc), _app(_make_app_doc()))
    change = delta.fields["Contacts"].modified[0].changes["fieldType"]
    assert (change.local, change.remote) == ("text", "email")


def test_webhook_modified():
    local_doc = _make_app_doc()
    local_doc["webhooks"][0]["url"] = "https://hooks.example.com/v2"
    delta = diff(_app(local_doc), _app(_make_app_doc()))

    assert [m.key for m in delta.webhooks.modified] == ["Notify"]
    assert set(delta.webhooks.modified[0].changes) == {"url"}


def test_webhooks_missing_on_one_side():
    remote_doc = _make_app_doc()
    remote_doc.pop("webhooks")
    delta = diff(_app(_make_app_doc()), _app(remote_doc))
    assert _keys(delta.webhooks.added) == ["Notify"]


def test_relationships_forms_and_permissions_do_not_affect_diff():
    local_doc = _make_app_doc()
    local_doc["tables"][0]["relationships"] = [{"name": "Company", "parentTable": "Companies"}]
    local_doc["tables"][0]["forms"] = [{"name": "Entry", "elements": []}]
    local_doc["tables"][0]["fields"][1]["permissions"] = [{"role": "Viewer", "permissions": ["view"]}]
    assert not diff(_app(local_doc), _app(_make_app_doc())).has_changes


def test_summary_and_to_dict():
    local_doc = _make_app_doc(description="Updated")
    local_doc["tables"].append({"name": "Deals", "fields": []})
    delta = diff(_app(local_doc), _app(_make_app_doc()))

    summary = delta.summary()
    assert "1 app property" in summary
    assert "1 table(s) added" in summary

    data = delta.to_dict()
    assert data["app"]["description"] == {
        "type": "modified",
        "local": "Updated",
        "remote": "Customer tracking",
    }
    assert data["tables"]["added"][0]["name"] == "Deals"
