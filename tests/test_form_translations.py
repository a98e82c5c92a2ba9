import uuid

from fastapi.testclient import TestClient

from compliance_hub.core.form_translations import is_stale
from compliance_hub.main import app
from tests.helpers import (
    API,
    auth,
    create_form_template,
    create_officer,
    create_org,
    get_template,
    text_field,
)

OFFICER = "officer@acme.test"


def test_is_stale():
    assert is_stale(2, 1) is True
    assert is_stale(1, 1) is False
    # a translation that was re-versioned past its master is not stale
    assert is_stale(1, 3) is False


def test_clone_as_translation(db_session):
    officer = create_officer(db_session)
    master = create_form_template(
        db_session,
        org=create_org(db_session),
        created_by=officer,
        status="PUBLISHED",
        description="Gifts received",
        fields=[text_field("giver"), text_field("value")],
    )

    client = TestClient(app)
    r = client.post(
        f"{API}/{master.id}/clone",
        headers=auth(OFFICER),
        json={"name": "Politica de regalos", "language": "es", "as_translation": True},
    )
    assert r.status_code == 201
    data = r.json()
    assert data["name"] == "Politica de regalos"
    assert data["language"] == "es"
    assert data["status"] == "DRAFT"
    assert data["version"] == 1
    assert data["parent_template_id"] == str(master.id)
    assert data["description"] == "Translation of: Gift Policy"
    assert data["disclosure_type"] == "GIFT"
    assert [f["key"] for f in data["fields"]] == ["giver", "value"]
    assert data["is_stale"] is False
    assert data["parent_version"] == 1


def test_clone_translation_requires_language(db_session):
    officer = create_officer(db_session)
    master = create_form_template(db_session, org=create_org(db_session), created_by=officer)

    client = TestClient(app)
    r = client.post(
        f"{API}/{master.id}/clone",
        headers=auth(OFFICER),
        json={"name": "Sin idioma", "as_translation": True},
    )
    assert r.status_code == 400
    assert "language is required" in r.json()["detail"]


def test_plain_clone_is_independent(db_session):
    officer = create_officer(db_session)
    source = create_form_template(
        db_session,
        org=create_org(db_session),
        created_by=officer,
        status="ARCHIVED",
        language="de",
        description="Old wording",
    )

    client = TestClient(app)
    r = client.post(f"{API}/{source.id}/clone", headers=auth(OFFICER), json={"name": "Gift Policy 2025"})
    assert r.status_code == 201
    data = r.json()
    assert data["parent_template_id"] is None
    assert data["language"] == "de"
    assert data["status"] == "DRAFT"
    assert data["version"] == 1
    assert data["description"] == "Cloned from: Gift Policy\n\nOld wording"
    assert data["is_stale"] is None

    # the clone is a new family, editable while the source stays archived
    r = client.put(f"{API}/{data['id']}", headers=auth(OFFICER), json={"description": "New wording"})
    assert r.status_code == 200
    assert get_template(db_session, source.id).description == "Old wording"


def test_plain_clone_without_description(db_session):
    officer = create_officer(db_session)
    source = create_form_template(db_session, org=create_org(db_session), created_by=officer)

    client = TestClient(app)
    r = client.post(f"{API}/{source.id}/clone", headers=auth(OFFICER), json={"name": "Copy", "language": "it"})
    assert r.status_code == 201
    assert r.json()["description"] == "Cloned from: Gift Policy"
    assert r.json()["language"] == "it"


def test_clone_content_is_a_copy(db_session):
    officer = create_officer(db_session)
    source = create_form_template(db_session, org=create_org(db_session), created_by=officer)

    client = TestClient(app)
    clone_id = client.post(f"{API}/{source.id}/clone", headers=auth(OFFICER), json={"name": "Copy"}).json()["id"]

    r = client.put(f"{API}/{clone_id}", headers=auth(OFFICER), json={"fields": [text_field("other")]})
    assert r.status_code == 200
    assert [f["key"] for f in get_template(db_session, source.id).fields] == ["giver"]


def test_clone_to_taken_name_conflicts(db_session):
    officer = create_officer(db_session)
    org = create_org(db_session)
    source = create_form_template(db_session, org=org, created_by=officer)
    create_form_template(db_session, org=org, created_by=officer, name="Taken")

    client = TestClient(app)
    r = client.post(f"{API}/{source.id}/clone", headers=auth(OFFICER), json={"name": "Taken"})
    assert r.status_code == 409

    r = client.post(f"{API}/{source.id}/clone", headers=auth(OFFICER), json={"name": "Gift Policy"})
    assert r.status_code == 409


def test_clone_not_found(db_session):
    create_officer(db_session)

    client = TestClient(app)
    r = client.post(f"{API}/{uuid.uuid4()}/clone", headers=auth(OFFICER), json={"name": "Copy"})
    assert r.status_code == 404


def test_list_translations_with_staleness(db_session):
    officer = create_officer(db_session)
    org = create_org(db_session)
    master = create_form_template(db_session, org=org, created_by=officer, version=2, status="PUBLISHED")
    create_form_template(db_session, org=org, created_by=officer, name="Regalos", language="es", parent=master)
    create_form_template(
        db_session, org=org, created_by=officer, name="Cadeaux", language="fr", version=2, parent=master
    )
    create_form_template(
        db_session, org=org, created_by=officer, name="Geschenke", language="de", version=3, parent=master
    )

    client = TestClient(app)
    r = client.get(f"{API}/{master.id}/translations", headers=auth(OFFICER))
    assert r.status_code == 200
    rows = r.json()
    assert [row["language"] for row in rows] == ["de", "es", "fr"]
    stale = {row["language"]: row["is_stale"] for row in rows}
    assert stale == {"de": False, "es": True, "fr": False}

    es = next(row for row in rows if row["language"] == "es")
    r = client.get(f"{API}/{es['id']}", headers=auth(OFFICER))
    assert r.json()["is_stale"] is True
    assert r.json()["parent_version"] == 2


def test_list_translations_empty(db_session):
    officer = create_officer(db_session)
    master = create_form_template(db_session, org=create_org(db_session), created_by=officer)

    client = TestClient(app)
    r = client.get(f"{API}/{master.id}/translations", headers=auth(OFFICER))
    assert r.status_code == 200
    assert r.json() == []


def test_list_translations_not_found(db_session):
    create_officer(db_session)

    client = TestClient(app)
    assert client.get(f"{API}/{uuid.uuid4()}/translations", headers=auth(OFFICER)).status_code == 404
