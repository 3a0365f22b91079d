"""
Tests d'intégration API pour l'enregistrement et la synchronisation des présences.
Endpoints : POST /api/attendance/mark, POST /api/attendance/sync, GET /api/attendance
"""

import uuid
from datetime import datetime
from unittest.mock import patch

from app.exceptions import DuplicateAttendanceError, StudentNotFoundError
from app.models.attendance import Attendance
from app.schemas.attendance import FailedLog, SyncedAttendance, SyncLog, SyncResults


# --- Helpers ---

def make_attendance(student_id="S001", session_id="SESSION-1") -> Attendance:
    ts = datetime(2026, 2, 20, 14, 32, 15)
    return Attendance(
        id=uuid.uuid4(),
        student_id=student_id,
        session_id=session_id,
        timestamp=ts,
        time_bucket=0,
        recorded_at=ts,
        confirmed_at=ts,
    )


def make_log(**kwargs) -> dict:
    log = {
        "studentId": kwargs.get("studentId", "S001"),
        "sessionId": kwargs.get("sessionId", "SESSION-1"),
        "time": kwargs.get("time", "2026-02-20T14:32:15Z"),
    }
    if "localId" in kwargs:
        log["localId"] = kwargs["localId"]
    return log


# ============================================================
# POST /api/attendance/mark
# ============================================================

def test_mark_succes(client):
    """Présence valide → 201 avec l'enregistrement en camelCase."""
    with patch("app.routers.attendance.attendance_service.mark_single") as mock:
        mock.return_value = make_attendance()
        response = client.post("/api/attendance/mark", json={
            "studentId": "S001",
            "sessionId": "SESSION-1",
            "timestamp": "2026-02-20T14:32:15Z",
        })

    assert response.status_code == 201
    data = response.json()
    assert data["attendance"]["studentId"] == "S001"
    assert data["attendance"]["sessionId"] == "SESSION-1"
    assert data["attendance"]["timestamp"].startswith("2026-02-20T14:32:15")
    assert "recordedAt" in data["attendance"]
    assert "confirmedAt" in data["attendance"]
    mock.assert_called_once()
    assert mock.call_args[0][1:] == ("S001", "SESSION-1", "2026-02-20T14:32:15Z")


def test_mark_champs_manquants(client):
    """studentId manquant → 400 (pas 422)."""
    response = client.post("/api/attendance/mark", json={"sessionId": "SESSION-1"})
    assert response.status_code == 400


def test_mark_doublon(client):
    """Présence déjà enregistrée dans la fenêtre → 400."""
    with patch("app.routers.attendance.attendance_service.mark_single") as mock:
        mock.side_effect = DuplicateAttendanceError("Présence déjà enregistrée pour cette session.")
        response = client.post("/api/attendance/mark", json={"studentId": "S001", "sessionId": "SESSION-1"})

    assert response.status_code == 400
    assert "déjà" in response.json()["detail"]


def test_mark_eleve_inconnu(client):
    with patch("app.routers.attendance.attendance_service.mark_single") as mock:
        mock.side_effect = StudentNotFoundError("Élève introuvable.")
        response = client.post("/api/attendance/mark", json={"studentId": "S999", "sessionId": "SESSION-1"})

    assert response.status_code == 404


def test_mark_deux_fois_base_reelle(db_client, add_student):
    """Bout en bout : 201 puis 400 pour la même présence."""
    add_student("S001")
    body = {"studentId": "S001", "sessionId": "SESSION-1", "timestamp": "2026-02-20T14:32:15Z"}

    assert db_client.post("/api/attendance/mark", json=body).status_code == 201
    assert db_client.post("/api/attendance/mark", json=body).status_code == 400


# ============================================================
# POST /api/attendance/sync
# ============================================================

def test_sync_succes(client):
    """Batch valide → 200 avec les trois groupes."""
    results = SyncResults(
        success=[SyncedAttendance.model_validate(make_attendance()).model_copy(update={"local_id": 1})],
        duplicates=[SyncLog(student_id="S002", session_id="SESSION-1", local_id=2)],
        failed=[FailedLog(log=SyncLog(student_id="S999", session_id="SESSION-1", local_id=3),
                          error="Élève introuvable.")],
    )
    with patch("app.routers.attendance.attendance_service.mark_batch") as mock:
        mock.return_value = results
        response = client.post("/api/attendance/sync", json={"logs": [
            make_log(localId=1), make_log(studentId="S002", localId=2), make_log(studentId="S999", localId=3),
        ]})

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "1 présence(s) synchronisée(s)."
    assert data["results"]["success"][0]["localId"] == 1
    assert data["results"]["duplicates"][0]["localId"] == 2
    assert data["results"]["failed"][0]["log"]["localId"] == 3
    assert data["results"]["failed"][0]["error"] == "Élève introuvable."


def test_sync_log_incomplet_accepte(client):
    """Un log sans studentId n'invalide pas la requête : il est transmis au service."""
    with patch("app.routers.attendance.attendance_service.mark_batch") as mock:
        mock.return_value = SyncResults()
        response = client.post("/api/attendance/sync", json={"logs": [{"sessionId": "SESSION-1"}]})

    assert response.status_code == 200
    logs = mock.call_args[0][1]
    assert logs[0].student_id is None
    assert logs[0].session_id == "SESSION-1"


def test_sync_liste_vide(client):
    response = client.post("/api/attendance/sync", json={"logs": []})
    assert response.status_code == 400


def test_sync_batch_trop_grand(client):
    """Batch de plus de 500 présences → 422."""
    response = client.post("/api/attendance/sync", json={"logs": [make_log() for _ in range(501)]})
    assert response.status_code == 422


def test_sync_sans_body(client):
    response = client.post("/api/attendance/sync")
    assert response.status_code == 422


def test_sync_base_reelle_succes_partiel(db_client, add_student):
    """Bout en bout : A confirmé, B doublon, C élève inconnu."""
    add_student("S001")
    add_student("S002")
    db_client.post("/api/attendance/mark", json={
        "studentId": "S002", "sessionId": "SESSION-1", "timestamp": "2026-02-20T14:32:00Z",
    })

    response = db_client.post("/api/attendance/sync", json={"logs": [
        make_log(studentId="S001", localId=10),
        make_log(studentId="S002", localId=11),
        make_log(studentId="S999", localId=12),
    ]})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["localId"] for r in results["success"]] == [10]
    assert [d["localId"] for d in results["duplicates"]] == [11]
    assert [f["log"]["localId"] for f in results["failed"]] == [12]


def test_sync_log_mal_type_isole(db_client, add_student):
    """Un studentId numérique n'invalide pas la requête : seul ce log part dans `failed`."""
    add_student("S001")

    response = db_client.post("/api/attendance/sync", json={"logs": [
        make_log(studentId="S001", localId=1),
        make_log(studentId=42, localId=2),
    ]})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["localId"] for r in results["success"]] == [1]
    assert [f["log"]["localId"] for f in results["failed"]] == [2]
    assert results["failed"][0]["log"]["studentId"] == 42


def test_sync_horodatage_hors_limites_isole(db_client, add_student):
    """Un horodatage en limite de l'intervalle datetime → échec du log, pas une erreur 500."""
    add_student("S001")
    add_student("S002")

    response = db_client.post("/api/attendance/sync", json={"logs": [
        make_log(studentId="S001", localId=1),
        make_log(studentId="S001", time="0001-01-01T00:00:10Z", localId=2),
        make_log(studentId="S002", localId=3),
    ]})

    assert response.status_code == 200
    results = response.json()["results"]
    assert [r["localId"] for r in results["success"]] == [1, 3]
    assert [f["log"]["localId"] for f in results["failed"]] == [2]


def test_mark_horodatage_hors_limites(db_client, add_student):
    add_student("S001")
    response = db_client.post("/api/attendance/mark", json={
        "studentId": "S001", "sessionId": "SESSION-1", "timestamp": "9999-12-31T23:59:30Z",
    })
    assert response.status_code == 400


# ============================================================
# GET /api/attendance
# ============================================================

def test_list_succes(client):
    with patch("app.routers.attendance.attendance_service.list_attendance") as mock:
        mock.return_value = ([make_attendance()], 1)
        response = client.get("/api/attendance?studentId=S001&limit=10")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["limit"] == 10
    assert data["skip"] == 0
    assert data["attendance"][0]["studentId"] == "S001"
    assert mock.call_args[0][1:] == ("S001", None, 10, 0)


def test_list_limite_trop_grande(client):
    response = client.get("/api/attendance?limit=1000")
    assert response.status_code == 422


# ============================================================
# Authentification et santé
# ============================================================

def test_sans_jeton(unauthenticated_client):
    response = unauthenticated_client.post("/api/attendance/sync", json={"logs": [make_log()]})
    assert response.status_code == 401


def test_mauvais_jeton(unauthenticated_client):
    response = unauthenticated_client.get(
        "/api/attendance", headers={"Authorization": "Bearer mauvais-jeton"},
    )
    assert response.status_code == 401


def test_bon_jeton(unauthenticated_client):
    with patch("app.routers.attendance.attendance_service.list_attendance") as mock:
        mock.return_value = ([], 0)
        response = unauthenticated_client.get(
            "/api/attendance", headers={"Authorization": "Bearer test-token"},
        )
    assert response.status_code == 200


def test_health(unauthenticated_client):
    response = unauthenticated_client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
