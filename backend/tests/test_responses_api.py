"""Tests for the response API (submit, heartbeat, close) and NLU mapping."""

import asyncio
import uuid
from unittest.mock import AsyncMock, patch

from formcraft.models.form import Form
from formcraft.models.response import Response
from formcraft.models.response_item import ResponseItem
from formcraft.services.llm import NluMapError, NluResult
from formcraft.services.responses import submit_response as real_submit_response

BASE = "/api/v1/responses"
NONEXISTENT_UUID = str(uuid.uuid4())

SCHEMA = {
    "title": "Inscrição",
    "fields": [
        {"key": "name", "type": "text", "label": "Nome", "required": True},
        {"key": "email", "type": "email", "label": "E-mail", "validation": {"pattern": r"^[^@\s]+@[^@\s]+$"}},
        {"key": "age", "type": "number", "label": "Idade", "validation": {"min": 18}},
        {"key": "terms", "type": "checkbox", "label": "Termos"},
    ],
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _create_response(db, status="draft"):
    form = Form(title="Inscrição", schema_json=SCHEMA)
    db.add(form)
    db.commit()
    response = Response(form_id=form.id, status=status)
    db.add(response)
    db.commit()
    db.refresh(response)
    return response


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


class TestSubmit:
    def test_invalid_answers(self, client, db, trackers):
        response = _create_response(db)
        resp = client.post(
            f"{BASE}/{response.id}/submit",
            json={"answers": {"email": "not-an-email", "age": "16"}},
        )

        assert resp.status_code == 422
        detail = resp.json()["detail"]
        assert detail["message"] == "Respostas inválidas"
        assert detail["errors"] == {
            "name": "Nome é obrigatório",
            "email": "E-mail tem formato inválido",
            "age": "Idade deve ser pelo menos 18",
        }

        db.expire_all()
        assert db.get(Response, response.id).status == "draft"
        assert db.query(ResponseItem).count() == 0
        trackers.release.assert_not_awaited()

    def test_valid_answers_are_persisted(self, client, db, trackers):
        response = _create_response(db)
        resp = client.post(
            f"{BASE}/{response.id}/submit",
            json={"answers": {"name": "Ana", "email": "ana@example.com", "age": "30", "terms": "on"}},
        )

        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "submitted"
        values = {item["field_key"]: item["value_json"] for item in data["items"]}
        assert values == {"name": "Ana", "email": "ana@example.com", "age": 30, "terms": True}
        assert all(item["valid"] for item in data["items"])
        trackers.release.assert_awaited_once_with(str(response.id))

    def test_optional_fields_may_be_omitted(self, client, db):
        response = _create_response(db)
        resp = client.post(f"{BASE}/{response.id}/submit", json={"answers": {"name": "Ana"}})
        assert resp.status_code == 200
        assert [item["field_key"] for item in resp.json()["items"]] == ["name"]

    def test_already_submitted(self, client, db):
        response = _create_response(db, status="submitted")
        resp = client.post(f"{BASE}/{response.id}/submit", json={"answers": {"name": "Ana"}})
        assert resp.status_code == 409
        assert resp.json()["detail"] == "Resposta já enviada"

    def test_missing_response(self, client):
        resp = client.post(f"{BASE}/{NONEXISTENT_UUID}/submit", json={"answers": {}})
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Resposta não encontrada"

    def test_persistence_failure(self, client, db, trackers):
        response = _create_response(db)
        with patch(
            "formcraft.api.v1.endpoints.responses.submit_response",
            side_effect=RuntimeError("db down"),
        ):
            resp = client.post(f"{BASE}/{response.id}/submit", json={"answers": {"name": "Ana"}})

        assert resp.status_code == 500
        assert resp.json()["detail"] == "Erro ao enviar resposta"
        trackers.release.assert_not_awaited()

    def test_persistence_runs_off_the_event_loop(self, client, db, trackers):
        response = _create_response(db)
        loops = []

        def persist(session, target, answers):
            try:
                loops.append(asyncio.get_running_loop())
            except RuntimeError:
                loops.append(None)
            return real_submit_response(session, target, answers)

        with patch("formcraft.api.v1.endpoints.responses.submit_response", side_effect=persist):
            resp = client.post(f"{BASE}/{response.id}/submit", json={"answers": {"name": "Ana"}})

        assert resp.status_code == 200
        assert resp.json()["status"] == "submitted"
        assert loops == [None]


# ---------------------------------------------------------------------------
# Liveness
# ---------------------------------------------------------------------------


class TestHeartbeat:
    def test_heartbeat(self, client, db, trackers):
        response = _create_response(db)
        resp = client.post(f"{BASE}/{response.id}/heartbeat")
        assert resp.status_code == 204
        trackers.heartbeat.assert_awaited_once_with(str(response.id))

    def test_heartbeat_untracked(self, client, db, trackers):
        trackers.heartbeat.return_value = False
        response = _create_response(db)
        assert client.post(f"{BASE}/{response.id}/heartbeat").status_code == 204

    def test_heartbeat_missing_response(self, client, trackers):
        resp = client.post(f"{BASE}/{NONEXISTENT_UUID}/heartbeat")
        assert resp.status_code == 404
        trackers.heartbeat.assert_not_awaited()

    def test_close_session(self, client, trackers):
        response_id = str(uuid.uuid4())
        resp = client.delete(f"{BASE}/{response_id}/session")
        assert resp.status_code == 204
        trackers.release.assert_awaited_once_with(response_id)


# ---------------------------------------------------------------------------
# NLU mapping
# ---------------------------------------------------------------------------


class TestNluMap:
    def test_map(self, client):
        result = NluResult(answers={"age": "25", "unknown": "x"}, intent="fill", reply="Anotado!")
        with patch("formcraft.api.v1.endpoints.nlu.nlu_map", new=AsyncMock(return_value=result)) as mock_map:
            resp = client.post(
                "/api/v1/nlu/map",
                json={
                    "message": "Tenho 25 anos",
                    "schema": SCHEMA,
                    "currentAnswers": {"name": "Ana", "email": ""},
                },
            )

        assert resp.status_code == 200
        data = resp.json()
        assert data["answers"] == {"age": "25", "unknown": "x"}
        assert data["mergedAnswers"] == {"name": "Ana", "age": 25}
        assert data["intent"] == "fill"
        assert data["reply"] == "Anotado!"

        message, schema, current = mock_map.await_args.args
        assert message == "Tenho 25 anos"
        assert schema.keys == ["name", "email", "age", "terms"]
        assert current == {"name": "Ana"}

    def test_map_failure(self, client):
        with patch(
            "formcraft.api.v1.endpoints.nlu.nlu_map",
            new=AsyncMock(side_effect=NluMapError("nlu-map", "HTTP 500")),
        ):
            resp = client.post("/api/v1/nlu/map", json={"message": "Oi", "schema": SCHEMA})

        assert resp.status_code == 502
        assert resp.json()["detail"] == "Erro ao interpretar mensagem"

    def test_map_invalid_schema(self, client):
        resp = client.post("/api/v1/nlu/map", json={"message": "Oi", "schema": {"fields": "x"}})
        assert resp.status_code == 422
