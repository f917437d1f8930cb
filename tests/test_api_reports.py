REPORT = {
    "title": "Pothole near the school",
    "description": "Large pothole causing traffic to swerve",
    "category": "road",
    "location": "5th Avenue",
}


def _create(client, headers, **overrides):
    response = client.post("/reports", json={**REPORT, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["report"]


def test_citizen_to_resolution_scenario(client, auth_headers, admin):
    registered = client.post(
        "/auth/register", json={"name": "Alice", "email": "alice@x.com", "password": "secret1"}
    )
    assert registered.status_code == 201

    login = client.post("/auth/login", json={"email": "alice@x.com", "password": "secret1"})
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "user"
    alice_headers = {"Authorization": f"Bearer {login.json()['token']}"}

    report = _create(client, alice_headers)
    _create(client, alice_headers, title="Overflowing bin", description="Smells", category="waste",
            location="Market Square")
    assert report["status"] == "pending"
    assert report["ownerId"] == login.json()["user"]["id"]
    assert report["owner"]["email"] == "alice@x.com"

    updated = client.put(f"/reports/{report['id']}", json={"status": "resolved"}, headers=auth_headers(admin))
    assert updated.status_code == 200
    assert updated.json()["report"]["status"] == "resolved"

    found = client.get("/reports", params={"search": "POTHOLE"}).json()
    assert found["count"] == 1
    assert found["reports"][0]["id"] == report["id"]


def test_report_json_is_camel_case(client, alice, auth_headers):
    report = _create(client, auth_headers(alice), imageUrl="https://cdn.example.com/a.png")

    assert set(report) == {
        "id", "title", "description", "category", "status", "location",
        "imageUrl", "ownerId", "owner", "createdAt", "updatedAt",
    }
    assert report["imageUrl"] == "https://cdn.example.com/a.png"


def test_create_requires_authentication(client):
    response = client.post("/reports", json=REPORT)

    assert response.status_code == 401
    assert response.json() == {"message": "No token provided"}


def test_create_reports_every_invalid_field(client, alice, auth_headers):
    response = client.post(
        "/reports",
        json={"title": "", "description": "x" * 2001, "category": "noise"},
        headers=auth_headers(alice),
    )

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert [e["field"] for e in body["errors"]] == ["title", "description", "category", "location"]


def test_public_list_and_get(client, alice, make_report):
    report = make_report(alice)

    listing = client.get("/reports")
    assert listing.status_code == 200
    assert listing.json()["count"] == 1

    single = client.get(f"/reports/{report.id}")
    assert single.status_code == 200
    assert single.json()["report"]["title"] == report.title


def test_list_filters_treat_all_as_no_filter(client, alice, make_report):
    make_report(alice, category="waste")
    make_report(alice, category="water")

    assert client.get("/reports", params={"category": "all", "status": "all"}).json()["count"] == 2
    assert client.get("/reports", params={"category": "water"}).json()["count"] == 1
    assert client.get("/reports", params={"status": "resolved"}).json()["count"] == 0


def test_get_bad_id_and_missing_id(client):
    bad = client.get("/reports/not-a-number")
    assert bad.status_code == 400
    assert bad.json() == {"message": "Invalid ID format"}

    missing = client.get("/reports/9999")
    assert missing.status_code == 404
    assert missing.json() == {"message": "Report not found"}


def test_non_admin_cannot_update_status(client, alice, auth_headers, make_report):
    report = make_report(alice)

    response = client.put(f"/reports/{report.id}", json={"status": "resolved"}, headers=auth_headers(alice))

    assert response.status_code == 403
    assert response.json() == {"message": "Access denied. Admin privileges required."}
    assert client.get(f"/reports/{report.id}").json()["report"]["status"] == "pending"


def test_admin_update_errors(client, admin, alice, auth_headers, make_report):
    report = make_report(alice)
    headers = auth_headers(admin)

    invalid = client.put(f"/reports/{report.id}", json={"status": "closed"}, headers=headers)
    assert invalid.status_code == 400
    assert invalid.json()["errors"][0]["field"] == "status"

    missing = client.put("/reports/9999", json={"status": "resolved"}, headers=headers)
    assert missing.status_code == 404


def test_delete_rules(client, alice, bob, admin, auth_headers, make_report):
    mine_id = make_report(alice).id
    other_id = make_report(alice).id

    forbidden = client.delete(f"/reports/{mine_id}", headers=auth_headers(bob))
    assert forbidden.status_code == 403
    assert forbidden.json() == {"message": "You can only delete your own reports"}
    assert client.get(f"/reports/{mine_id}").status_code == 200

    assert client.delete(f"/reports/{mine_id}", headers=auth_headers(alice)).json() == {
        "message": "Report deleted successfully"
    }
    assert client.delete(f"/reports/{other_id}", headers=auth_headers(admin)).status_code == 200
    assert client.get(f"/reports/{mine_id}").status_code == 404
    assert client.delete(f"/reports/{mine_id}", headers=auth_headers(alice)).status_code == 404


def test_my_reports(client, alice, bob, auth_headers, make_report):
    make_report(alice)
    make_report(bob)
    make_report(alice)

    response = client.get("/reports/my/reports", headers=auth_headers(alice))

    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert {r["ownerId"] for r in body["reports"]} == {alice.id}
    assert client.get("/reports/my/reports").status_code == 401


def test_stats_are_admin_only(client, alice, admin, auth_headers, make_report):
    make_report(alice)
    resolved = make_report(alice)
    client.put(f"/reports/{resolved.id}", json={"status": "resolved"}, headers=auth_headers(admin))

    assert client.get("/reports/admin/stats", headers=auth_headers(alice)).status_code == 403

    response = client.get("/reports/admin/stats", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json() == {"stats": {"total": 2, "pending": 1, "inProgress": 0, "resolved": 1}}


def test_unknown_route(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.json() == {"message": "Route /nowhere not found"}


def test_out_of_range_ids_are_bad_ids(client, admin, auth_headers):
    huge = "99999999999999999999"
    headers = auth_headers(admin)

    for response in (
        client.get(f"/reports/{huge}"),
        client.get("/reports/0"),
        client.put(f"/reports/{huge}", json={"status": "resolved"}, headers=headers),
        client.delete(f"/reports/{huge}", headers=headers),
    ):
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid ID format"}


def test_public_routes_ignore_bad_tokens(client, alice, make_report):
    report_id = make_report(alice).id
    headers = {"Authorization": "Bearer garbage"}

    assert client.get("/reports", headers=headers).status_code == 200
    assert client.get(f"/reports/{report_id}", headers=headers).status_code == 200


def test_filter_values_are_case_insensitive(client, alice, make_report):
    make_report(alice, category="water")

    assert client.get("/reports", params={"category": " WATER ", "status": "Pending"}).json()["count"] == 1
