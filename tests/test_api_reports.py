# tests/test_api_reports.py

from datetime import date, timedelta

import pytest

from app.models.all_models import DriveStatus
from app.utils.dates import local_today

pytestmark = pytest.mark.api


@pytest.fixture
def completed_drive(make_student, make_drive, add_vaccination):
    drive = make_drive(name="MMR Drive", vaccine_name="MMR", date=date(2026, 1, 12),
                       status=DriveStatus.COMPLETED, used_doses=1)
    add_vaccination(make_student(name="Asha Nair", roll_number="8A01"), drive)
    return drive


class TestReportsApi:

    def test_report(self, client, completed_drive):
        response = client.get("/api/reports/vaccinations")

        assert response.status_code == 200
        body = response.json()
        assert body["drives_count"] == 1
        assert body["vaccinated_students"] == 1
        assert body["rows"][0]["date"] == "2026-01-12"
        assert body["class_counts"] == [{"name": "Class 8", "count": 1}]
        assert body["vaccine_coverage"] == [{"name": "MMR", "value": 1}]

    def test_month_filter(self, client, completed_drive):
        january = client.get("/api/reports/vaccinations", params={"year": 2026, "month": 1}).json()
        february = client.get("/api/reports/vaccinations", params={"year": 2026, "month": 2}).json()

        assert january["drives_count"] == 1
        assert february["drives_count"] == 0

    def test_year_and_month_go_together(self, client):
        response = client.get("/api/reports/vaccinations", params={"month": 1})

        assert response.status_code == 422
        assert response.json()["code"] == "ValidationFailed"

    def test_export(self, client, completed_drive):
        response = client.get("/api/reports/vaccinations/export", params={"year": 2026, "month": 1})

        assert response.status_code == 200
        assert 'filename="Vaccination_Report_Jan_2026.csv"' in response.headers["content-disposition"]
        assert response.text.splitlines()[1] == "Asha Nair,8,A,8A01,MMR,2026-01-12"


class TestDashboardApi:

    def test_overview(self, client, make_student, make_drive, add_vaccination):
        today = local_today()
        add_vaccination(make_student(), make_drive(date=today - timedelta(days=10), status=DriveStatus.COMPLETED))
        make_student()
        make_drive(name="Soon", date=today + timedelta(days=12))

        response = client.get("/api/dashboard/overview")

        assert response.status_code == 200
        body = response.json()
        assert body["stats"] == {"total": 2, "vaccinated": 1, "percentage": 50}
        assert [d["name"] for d in body["upcoming_drives"]] == ["Soon"]
        assert body["drives_by_status"] == {"scheduled": 1, "completed": 1, "cancelled": 0}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "Server is running"}
