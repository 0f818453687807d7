"""Tests for the subgraph HTTP surface, app assembly and the CLI."""

from __future__ import annotations

import json

import httpx
import pytest
from fastapi.testclient import TestClient

from storefront.apps import available_services, build_app, build_subgraph_app
from storefront.auth.jwks_cache import JWKSCache
from storefront.auth.keys import SigningKey
from storefront.auth.tokens import TokenIssuer, TokenVerifier
from storefront.cli.config import DEFAULT_PORTS, StorefrontConfig, load_config
from storefront.cli.main import app as cli
from storefront.core.errors import ConfigError
from storefront.core.settings import Settings
from storefront.service.app import create_subgraph_app
from storefront.subgraphs import InventorySubgraph
from storefront.store.fixtures import memory_repositories


@pytest.fixture
def key_file(tmp_path, signing_key):
    pem_path, _ = signing_key.write(tmp_path / "keys")
    return pem_path


@pytest.fixture
def users_client(key_file):
    app = build_subgraph_app("users", Settings(private_key_path=str(key_file)))
    with TestClient(app) as client:
        yield client


# ---------------------------------------------------------------------------
# Subgraph HTTP surface
# ---------------------------------------------------------------------------

class TestSubgraphApp:
    def test_health_and_schema(self):
        with TestClient(build_subgraph_app("inventory", Settings())) as client:
            assert client.get("/health").json() == {"status": "ok", "service": "inventory"}
            schema = client.get("/__schema").json()

        assert schema["service"] == "inventory"
        assert schema["entities"]["Variant"]["keys"] == [["id"]]
        assert schema["entities"]["Variant"]["extension"] is True
        assert "mutations" not in schema

    def test_entities(self):
        with TestClient(build_subgraph_app("inventory", Settings())) as client:
            response = client.post("/_entities", json={
                "representations": [
                    {"__typename": "Variant", "id": "variant:1"},
                    {"__typename": "Variant", "id": "variant:8"},
                ],
            })

        assert response.status_code == 200
        assert response.json() == {
            "data": {
                "_entities": [
                    {"__typename": "Variant", "id": "variant:1", "inventory": {"inStock": True, "inventory": 12}},
                    {"__typename": "Variant", "id": "variant:8", "inventory": None},
                ],
            },
        }

    def test_entities_with_errors(self):
        with TestClient(build_subgraph_app("inventory", Settings())) as client:
            body = client.post("/_entities", json={"representations": [{"id": "variant:1"}]}).json()

        assert body["data"] == {"_entities": [None]}
        assert body["errors"][0]["path"] == ["_entities", 0]
        assert body["errors"][0]["extensions"]["code"] == "BAD_USER_INPUT"

    def test_entities_mixed_types_with_fields(self):
        with TestClient(build_subgraph_app("products", Settings())) as client:
            body = client.post("/_entities", json={
                "representations": [
                    {"__typename": "Product", "id": "product:1"},
                    {"__typename": "Variant", "id": "variant:1"},
                ],
                "fields": {"Product": {"title": {}}, "Variant": {"price": {}}},
            }).json()

        assert "errors" not in body
        assert body["data"]["_entities"] == [
            {"__typename": "Product", "id": "product:1", "title": "Air Jordan 1 Mid"},
            {"__typename": "Variant", "id": "variant:1", "price": 600.25},
        ]

    def test_malformed_key_is_bad_user_input(self):
        with TestClient(build_subgraph_app("inventory", Settings())) as client:
            body = client.post("/_entities", json={
                "representations": [{"__typename": "Variant", "id": ["variant:1"]}],
            }).json()

        assert body["data"] == {"_entities": [None]}
        assert body["errors"][0]["extensions"]["code"] == "BAD_USER_INPUT"

    def test_internal_errors_are_masked(self, caplog):
        subgraph = InventorySubgraph.from_repositories(memory_repositories("inventory"))

        async def broken(parent, args, ctx):
            raise RuntimeError("database exploded")

        subgraph.registry.get("Variant").add_field("inventory", broken)
        with TestClient(create_subgraph_app(subgraph)) as client:
            body = client.post("/_entities", json={
                "representations": [{"__typename": "Variant", "id": "variant:1"}],
            }).json()

        assert body["data"] == {"_entities": [None]}
        assert body["errors"][0]["message"] == "Internal server error"
        assert body["errors"][0]["extensions"]["code"] == "INTERNAL_SERVER_ERROR"
        assert "database exploded" in caplog.text

    def test_operations(self):
        with TestClient(build_subgraph_app("products", Settings())) as client:
            body = client.post("/", json={"query": {"product": {"id": "product:3"}}}).json()
        assert body["data"]["product"]["title"] == "Air Max 90"

    def test_checkout_with_user_header(self):
        with TestClient(build_subgraph_app("checkout", Settings())) as client:
            body = client.post(
                "/",
                json={"mutation": {"checkout": {"paymentMethodId": "paymentMethod:1"}}},
                headers={"x-user-id": "user:1"},
            ).json()
        assert body["data"]["checkout"]["successful"] is True

    def test_unknown_service(self):
        with pytest.raises(ConfigError):
            build_subgraph_app("payments", Settings())

    def test_require_auth_needs_jwks_url(self):
        with pytest.raises(ConfigError):
            build_app("coprocessor", Settings(require_auth=True))
        with pytest.raises(ConfigError):
            build_app("inventory", Settings(require_auth=True))


# ---------------------------------------------------------------------------
# Users service
# ---------------------------------------------------------------------------

class TestUsersApp:
    def test_jwks_endpoint(self, users_client, signing_key):
        assert users_client.get("/.well-known/jwks.json").json() == signing_key.jwks()

    def test_login_then_me(self, users_client):
        login = users_client.post("/", json={
            "mutation": {"login": {"username": "user2", "password": "pw", "scopes": ["user:read:email"]}},
        }).json()["data"]["login"]
        assert login["__typename"] == "LoginSuccessful"

        me = users_client.post(
            "/",
            json={"query": {"me": {}, "user": {"id": "user:1"}}},
            headers={"Authorization": f"Bearer {login['token']}"},
        ).json()["data"]
        assert me["me"]["id"] == "user:2"
        assert me["user"]["email"] == "user1@contoso.org"

    def test_invalid_token_is_anonymous(self, users_client):
        body = users_client.post(
            "/",
            json={"query": {"me": {}, "user": {"id": "user:1"}}},
            headers={"Authorization": "Bearer garbage"},
        ).json()
        assert body["data"]["me"] is None
        assert "email" not in body["data"]["user"]

    def test_login_failed(self, users_client):
        login = users_client.post("/", json={
            "mutation": {"login": {"username": "ghost", "password": "pw"}},
        }).json()["data"]["login"]
        assert login == {"__typename": "LoginFailed", "reason": "user not found"}


# ---------------------------------------------------------------------------
# Token verification through the JWKS cache
# ---------------------------------------------------------------------------

class TestJWKSVerification:
    def test_subgraph_verifies_tokens_from_jwks(self, signing_key, issuer):
        calls = []

        def jwks(request):
            calls.append(request.url)
            return httpx.Response(200, json=signing_key.jwks())

        cache = JWKSCache("http://users.test/.well-known/jwks.json", client=httpx.AsyncClient(transport=httpx.MockTransport(jwks)))
        subgraph = InventorySubgraph.from_repositories(memory_repositories("inventory"))
        token = issuer.issue("user:1", "user1")

        with TestClient(create_subgraph_app(subgraph, verifier=TokenVerifier(cache))) as client:
            for _ in range(3):
                response = client.post(
                    "/_entities",
                    json={"representations": [{"__typename": "Variant", "id": "variant:1"}]},
                    headers={"Authorization": f"Bearer {token}"},
                )
                assert response.status_code == 200
        assert len(calls) == 1

    def test_unavailable_identity_provider(self, issuer):
        cache = JWKSCache(
            "http://users.test/.well-known/jwks.json",
            client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(502))),
        )
        subgraph = InventorySubgraph.from_repositories(memory_repositories("inventory"))
        with TestClient(create_subgraph_app(subgraph, verifier=TokenVerifier(cache))) as client:
            authenticated = client.post(
                "/_entities",
                json={"representations": [{"__typename": "Variant", "id": "variant:1"}]},
                headers={"Authorization": f"Bearer {issuer.issue('user:1', 'user1')}"},
            )
            anonymous = client.post(
                "/_entities",
                json={"representations": [{"__typename": "Variant", "id": "variant:1"}]},
            )
        assert authenticated.status_code == 503
        assert anonymous.status_code == 200


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestCli:
    def test_available_services(self):
        assert set(available_services()) == set(DEFAULT_PORTS)

    def test_keys_generate(self, tmp_path, capsys):
        assert cli(["keys", "generate", "--out", str(tmp_path), "--kid", "demo"]) == 0

        key = SigningKey.load(tmp_path / "private_key.pem", kid="demo")
        keyset = json.loads((tmp_path / "jwks.json").read_text())
        assert keyset == key.jwks()
        assert "demo" in capsys.readouterr().out

        token = TokenIssuer(key).issue("user:1", "user1")
        assert token.count(".") == 2

    def test_services_listing(self, tmp_path, capsys):
        config_path = tmp_path / "storefront.yaml"
        config_path.write_text("services:\n  products:\n    port: 5001\n")
        assert cli(["services", "--config", str(config_path)]) == 0
        out = capsys.readouterr().out
        assert "http://localhost:5001" in out
        assert "http://localhost:8081" in out

    def test_no_command_prints_help(self, capsys):
        assert cli([]) == 0
        assert "storefront" in capsys.readouterr().out


class TestConfig:
    def test_defaults_without_file(self, tmp_path):
        config = load_config(tmp_path / "missing.yaml")
        assert config.services["coprocessor"].port == 8081
        assert config.services["users"].url == "http://localhost:4007"

    def test_unknown_service_rejected(self, tmp_path):
        path = tmp_path / "storefront.yaml"
        path.write_text("services:\n  payments:\n    port: 5001\n")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_save_and_load(self, tmp_path):
        config = StorefrontConfig.default()
        config.services["inventory"].port = 6002
        config.save(tmp_path / "storefront.yaml")
        assert load_config(tmp_path / "storefront.yaml").services["inventory"].port == 6002
