"""Tests for the article admin and public handlers."""

from typing import Any, Dict

import pytest

from src.handlers import article_operations
from src.handlers.article_operations import ADMIN_ROUTER, PUBLIC_ROUTER
from src.handlers.ingestor import index_article
from src.utils.errors import PreconditionFailedError
from src.utils.resources import Resources
from tests.unit.conftest import BUCKET
from tests.unit.fake_opensearch import FakeOpenSearch
from tests.unit.fixtures import make_api_event, make_article_request, response_body

BASE = "/v1/admin/article"


def _create(resources: Resources, **overrides: Any) -> Dict[str, Any]:
    response = ADMIN_ROUTER.dispatch(resources, make_api_event("POST", BASE, body=make_article_request(**overrides)))
    assert response_body(response) == {"success": True, "data": True}
    return response


class TestAdminArticles:
    """Tests for /v1/admin/article."""

    def test_create_then_get(self, resources: Resources) -> None:
        """Test a created article is readable from the store right away."""
        _create(resources)

        response = ADMIN_ROUTER.dispatch(resources, make_api_event("GET", f"{BASE}/{{id}}", "festival-de-inverno"))

        data = response_body(response)["data"]
        assert data["id"] == "festival-de-inverno"
        assert data["body"]["en"] == "Full schedule"
        assert data["created_at"] == data["updated_at"]

    def test_create_leaves_no_outbox_record(self, resources: Resources, aws: Dict[str, Any]) -> None:
        _create(resources)

        assert aws["s3"].list_objects_v2(Bucket=BUCKET, Prefix="outbox/").get("KeyCount") == 0

    def test_create_derives_id_from_slug(self, resources: Resources) -> None:
        request = make_article_request()
        del request["id"]

        ADMIN_ROUTER.dispatch(resources, make_api_event("POST", BASE, body=request))

        assert resources.store("article").get("festival-de-inverno") is not None

    def test_create_twice_preserves_created_at(self, resources: Resources) -> None:
        _create(resources)
        created_at = resources.store("article").get("festival-de-inverno")["created_at"]

        _create(resources, title={"pt": "Novo título"})

        stored = resources.store("article").get("festival-de-inverno")
        assert stored["created_at"] == created_at
        assert stored["title"]["pt"] == "Novo título"

    def test_create_invalid(self, resources: Resources) -> None:
        """Test every validation message comes back in one 400."""
        response = ADMIN_ROUTER.dispatch(resources, make_api_event("POST", BASE, body={"title": {}}))

        assert response["statusCode"] == 400
        assert len(response_body(response)["errors"]) >= 3

    def test_create_malformed_body(self, resources: Resources) -> None:
        response = ADMIN_ROUTER.dispatch(resources, make_api_event("POST", BASE, body="{nope"))

        assert response["statusCode"] == 400

    def test_get_missing_is_null(self, resources: Resources) -> None:
        response = ADMIN_ROUTER.dispatch(resources, make_api_event("GET", f"{BASE}/{{id}}", "ghost"))

        assert response["statusCode"] == 200
        assert response_body(response) == {"success": True, "data": None}

    def test_get_without_id(self, resources: Resources) -> None:
        response = ADMIN_ROUTER.dispatch(resources, make_api_event("GET", f"{BASE}/{{id}}", ""))

        assert response["statusCode"] == 400

    def test_replace_uses_path_id(self, resources: Resources) -> None:
        _create(resources)
        body = make_article_request(id="something-else", heroImage="https://cdn.example.com/new.jpg")

        response = ADMIN_ROUTER.dispatch(resources, make_api_event("PUT", f"{BASE}/{{id}}", "festival-de-inverno", body))

        assert response_body(response)["data"] is True
        assert resources.store("article").get("festival-de-inverno")["heroImage"] == "https://cdn.example.com/new.jpg"
        assert resources.store("article").get("something-else") is None

    def test_replace_missing(self, resources: Resources) -> None:
        """Test PUT of an unknown id is a 400, not an implicit create."""
        response = ADMIN_ROUTER.dispatch(
            resources, make_api_event("PUT", f"{BASE}/{{id}}", "ghost", make_article_request())
        )

        assert response["statusCode"] == 400
        assert response_body(response)["errors"] == ["article 'ghost' not found."]

    def test_toggle(self, resources: Resources) -> None:
        _create(resources)

        response = ADMIN_ROUTER.dispatch(
            resources, make_api_event("PATCH", f"{BASE}/{{id}}", "festival-de-inverno", {"active": False})
        )

        assert response_body(response)["data"] is True
        assert resources.store("article").get("festival-de-inverno")["active"] is False

    def test_toggle_missing(self, resources: Resources) -> None:
        response = ADMIN_ROUTER.dispatch(resources, make_api_event("PATCH", f"{BASE}/{{id}}", "ghost", {"active": True}))

        assert response["statusCode"] == 400

    def test_toggle_invalid(self, resources: Resources) -> None:
        response = ADMIN_ROUTER.dispatch(resources, make_api_event("PATCH", f"{BASE}/{{id}}", "x", {"active": "yes"}))

        assert response_body(response)["errors"] == ["active is required and must be a boolean."]

    def test_concurrent_write_is_409(self, resources: Resources, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a lost conditional write answers 409."""
        _create(resources)

        def lose(kind: str, entity: Dict[str, Any], if_match: Any = None) -> str:
            assert if_match == '"stale"'
            raise PreconditionFailedError("modified")

        monkeypatch.setattr(resources, "publish", lose)
        event = make_api_event(
            "PUT", f"{BASE}/{{id}}", "festival-de-inverno", make_article_request(), headers={"If-Match": '"stale"'}
        )

        assert ADMIN_ROUTER.dispatch(resources, event)["statusCode"] == 409

    def test_list_from_index(self, resources: Resources) -> None:
        """Test listings read the index after ingestion."""
        _create(resources)
        _create(resources, id="mostra-de-cinema", title={"pt": "Mostra de Cinema"})
        index_article(resources, "festival-de-inverno")
        index_article(resources, "mostra-de-cinema")

        response = ADMIN_ROUTER.dispatch(resources, make_api_event("GET", BASE, query={"name": "CINEMA"}))

        data = response_body(response)["data"]
        assert [item["id"] for item in data] == ["mostra-de-cinema"]
        assert set(data[0]) == {"id", "title", "slug", "publicationDate", "active"}

    def test_unknown_route(self, resources: Resources) -> None:
        response = ADMIN_ROUTER.dispatch(resources, make_api_event("DELETE", f"{BASE}/{{id}}", "x"))

        assert response_body(response) == {"success": False, "errors": ["Invalid Operation"]}

    def test_search_outage_is_500(self, resources: Resources, fake_search: FakeOpenSearch) -> None:
        fake_search.fail_next = 503

        response = ADMIN_ROUTER.dispatch(resources, make_api_event("GET", BASE))

        assert response["statusCode"] == 500


class TestPublicArticles:
    """Tests for /v1/public/article."""

    def test_get_by_slug_any_language(self, resources: Resources) -> None:
        _create(resources)
        index_article(resources, "festival-de-inverno")

        response = PUBLIC_ROUTER.dispatch(
            resources, make_api_event("GET", "/v1/public/article/{id}", "winter-festival")
        )

        data = response_body(response)["data"]
        assert data["id"] == "festival-de-inverno"
        assert data["body"]["pt"] == "Programação completa"

    def test_inactive_is_null(self, resources: Resources) -> None:
        _create(resources, active=False)
        index_article(resources, "festival-de-inverno")

        response = PUBLIC_ROUTER.dispatch(
            resources, make_api_event("GET", "/v1/public/article/{id}", "festival-de-inverno")
        )

        assert response_body(response)["data"] is None

    def test_unknown_slug_is_null(self, resources: Resources) -> None:
        response = PUBLIC_ROUTER.dispatch(resources, make_api_event("GET", "/v1/public/article/{id}", "ghost"))

        assert response_body(response) == {"success": True, "data": None}

    def test_list_active_only(self, resources: Resources) -> None:
        _create(resources)
        _create(resources, id="rascunho", active=False)
        index_article(resources, "festival-de-inverno")
        index_article(resources, "rascunho")

        response = PUBLIC_ROUTER.dispatch(resources, make_api_event("GET", "/v1/public/article"))

        assert [doc["id"] for doc in response_body(response)["data"]] == ["festival-de-inverno"]

    def test_entrypoint(self, resources: Resources, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(article_operations, "get_resources", lambda: resources)

        response = article_operations.public_handler(make_api_event("GET", "/v1/public/article"), None)

        assert response_body(response) == {"success": True, "data": []}
