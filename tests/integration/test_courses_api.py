def _seed_extra(fake_db):
    fake_db.seed("courses", [{"id": "course-2", "slug": "devops", "title": "DevOps Praktijk", "price": 1499, "category": "devops"}])
    fake_db.seed("course_schedules", [
        {"id": "past", "course_id": "course-1", "start_date": "2001-01-01T09:00:00+00:00", "location": "Utrecht", "max_participants": 10, "available_spots": 0},
        {"id": "later", "course_id": "course-1", "start_date": "2099-12-01T09:00:00+00:00", "location": "Utrecht", "max_participants": 10, "available_spots": 0},
        {"id": "devops-1", "course_id": "course-2", "start_date": "2099-11-01T09:00:00+00:00", "location": "Rotterdam", "max_participants": 8, "available_spots": 3},
    ])


def test_list_courses_and_filter(catalog, client, fake_db):
    _seed_extra(fake_db)
    titles = [c["title"] for c in client.get("/api/v1/courses").json()["courses"]]
    assert titles == ["DevOps Praktijk", "Python Basis"]

    devops = client.get("/api/v1/courses", params={"category": "devops"}).json()["courses"]
    assert [c["slug"] for c in devops] == ["devops"]


def test_course_by_slug(catalog, client):
    assert client.get("/api/v1/courses/python-basis").json()["title"] == "Python Basis"
    missing = client.get("/api/v1/courses/onbekend")
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Cursus niet gevonden"}


def test_course_schedules_future_only_ascending(catalog, client, fake_db):
    _seed_extra(fake_db)
    schedules = client.get("/api/v1/courses/course-1/schedules").json()["schedules"]
    assert [s["id"] for s in schedules] == ["schedule-1", "later"]
    assert schedules[0]["course"]["title"] == "Python Basis"


def test_upcoming_schedules_limit(catalog, client, fake_db):
    _seed_extra(fake_db)
    schedules = client.get("/api/v1/schedules/upcoming", params={"limit": 2}).json()["schedules"]
    assert [s["id"] for s in schedules] == ["schedule-1", "devops-1"]


def test_schedules_by_date_range(catalog, client, fake_db):
    _seed_extra(fake_db)
    resp = client.get("/api/v1/schedules", params={"start": "2099-10-01T00:00:00Z", "end": "2099-11-30T00:00:00Z"})
    assert [s["id"] for s in resp.json()["schedules"]] == ["schedule-1", "devops-1"]

    inverted = client.get("/api/v1/schedules", params={"start": "2099-11-30T00:00:00Z", "end": "2099-10-01T00:00:00Z"})
    assert inverted.status_code == 400


def test_schedule_availability(catalog, client, fake_db):
    _seed_extra(fake_db)
    assert client.get("/api/v1/schedules/schedule-1/availability").json() == {"available": True, "spots": 12, "total": 12}
    assert client.get("/api/v1/schedules/later/availability").json() == {"available": False, "spots": 0, "total": 10}
    assert client.get("/api/v1/schedules/nope/availability").json() == {"available": False, "spots": 0, "total": 0}
