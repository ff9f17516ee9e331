"""
Policy Endpoints Integration Test Module.

This module exercises the HTTP endpoints defined in `sbom_policy.api.policy`
through FastAPI's TestClient. Each test builds its own application around an
in-memory policy configuration, so no policy file is read.

The suite covers:
1. Policy listing (JSON and text/csv/markdown renderings, filters).
2. Single policy lookup.
3. License evaluation (results, summary, optional report on disk).
4. Expression validation.
"""

import os

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from sbom_policy.main import create_app
from sbom_policy.services.policy import IndexBuildError, LicensePolicyConfig
from tests.conftest import make_policy


# ==================================================================================
#                                     FIXTURES
# ==================================================================================

@pytest.fixture
def client(good_bad_maybe_policies):
    """TestClient around an application configured with the Good/Bad/Maybe policies."""
    app = create_app(LicensePolicyConfig.from_policies(good_bad_maybe_policies))
    return TestClient(app)


# ==================================================================================
#                                   TEST: ROOT
# ==================================================================================

def test_root(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"message": "License Policy Backend is running"}


def test_create_app_fails_fast_on_bad_config():
    """An unusable configuration stops the startup instead of serving UNDEFINED everywhere."""
    config = LicensePolicyConfig.from_policies([
        make_policy(id="MIT", usagePolicy="allow"),
        make_policy(id="MIT", usagePolicy="deny"),
    ])
    with pytest.raises(IndexBuildError):
        create_app(config)


# ==================================================================================
#                                 TEST: /api/policies
# ==================================================================================

def test_list_policies_json(client):
    resp = client.get("/api/policies")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data) == 8
    # sorted by family, then id
    assert [p["family"] for p in data][:2] == ["Apache", "Bad"]
    assert data[0]["usagePolicy"] == "allow"
    assert "osi" in data[0]


def test_list_policies_filters(client):
    resp = client.get("/api/policies", params={"usage_policy": "needs-review"})
    assert [p["id"] for p in resp.json()] == ["", "LGPL-2.1-only", "LGPL-3.0-only", "Maybe"]

    resp = client.get("/api/policies", params={"family": "GPL"})
    assert [p["id"] for p in resp.json()] == ["GPL-2.0-only"]


@pytest.mark.parametrize("fmt,marker", [
    ("text", "usage-policy  family"),
    ("csv", "usage-policy,family,id"),
    ("markdown", "| usage-policy | family |"),
])
def test_list_policies_text_formats(client, fmt, marker):
    resp = client.get("/api/policies", params={"format": fmt})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert marker in resp.text
    assert "GPL-2.0-only" in resp.text


def test_list_policies_unsupported_format(client):
    resp = client.get("/api/policies", params={"format": "xml"})
    assert resp.status_code == 400
    assert "Unsupported format" in resp.json()["detail"]


def test_get_policy(client):
    resp = client.get("/api/policies/LGPL-2.1-only")
    assert resp.status_code == 200
    body = resp.json()
    assert body["family"] == "LGPL"
    assert body["usagePolicy"] == "needs-review"


def test_get_policy_not_found(client):
    resp = client.get("/api/policies/Unknown-1.0")
    assert resp.status_code == 404


# ==================================================================================
#                              TEST: /api/licenses/evaluate
# ==================================================================================

def test_evaluate(client):
    payload = {"licenses": [
        {"id": "Good", "resource_name": "lib-a"},
        {"name": "Bad License", "resource_name": "lib-b"},
        {"expression": "Apache-2.0 AND GPL-2.0-only", "resource_name": "lib-c"},
        {"expression": "Good AND", "resource_name": "lib-d"},
        {"resource_name": "lib-e"},
    ]}
    resp = client.post("/api/licenses/evaluate", json=payload)
    assert resp.status_code == 200
    data = resp.json()

    assert [r["usage_policy"] for r in data["results"]] == ["allow", "deny", "deny", "UNDEFINED", "UNDEFINED"]
    assert [r["license_type"] for r in data["results"]] == ["id", "name", "expression", "expression", None]
    assert data["results"][3]["error"]
    assert data["summary"] == {"allow": 1, "deny": 2, "needs-review": 0, "UNDEFINED": 2, "CONFLICT": 0}
    assert data["report_path"] is None


def test_evaluate_with_report(client, tmp_path):
    with patch("sbom_policy.api.policy.REPORT_OUTPUT_DIR", str(tmp_path)):
        resp = client.post(
            "/api/licenses/evaluate",
            params={"report": "true"},
            json={"licenses": [{"id": "Maybe", "resource_name": "lib-a"}]},
        )
    assert resp.status_code == 200
    path = resp.json()["report_path"]
    assert path == os.path.join(str(tmp_path), "LICENSE_POLICY_REPORT.txt")
    with open(path, encoding="utf-8") as f:
        assert "[needs-review] lib-a → Maybe (id)" in f.read()


def test_evaluate_invalid_payload(client):
    resp = client.post("/api/licenses/evaluate", json={"items": []})
    assert resp.status_code == 422


def test_evaluate_spdx_mode(good_bad_maybe_policies):
    client = TestClient(create_app(LicensePolicyConfig.from_policies(good_bad_maybe_policies, combination_mode="spdx")))
    resp = client.post("/api/licenses/evaluate", json={"licenses": [{"expression": "Good OR Bad"}]})
    assert resp.json()["results"][0]["usage_policy"] == "allow"


# ==================================================================================
#                              TEST: /api/licenses/validate
# ==================================================================================

def test_validate_valid_expression(client):
    resp = client.post("/api/licenses/validate", json={"expression": "(MIT OR Apache-2.0)  AND GPL-2.0-only"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["valid"] is True
    assert data["tokens"] == ["(", "MIT", "OR", "Apache-2.0", ")", "AND", "GPL-2.0-only"]
    assert data["normalized"] == "(MIT OR Apache-2.0) AND GPL-2.0-only"
    assert data["invalid_ids"] == []
    assert set(data["license_keys"]) >= {"MIT", "Apache-2.0"}
    assert data["error"] is None


def test_validate_invalid_id(client):
    data = client.post("/api/licenses/validate", json={"expression": "MIT OR Foo?Bar"}).json()
    assert data["valid"] is False
    assert data["invalid_ids"] == ["Foo?Bar"]
    assert data["normalized"] == "MIT OR Foo?Bar"


def test_validate_syntax_error(client):
    data = client.post("/api/licenses/validate", json={"expression": "MIT OR"}).json()
    assert data["valid"] is False
    assert data["tokens"] == ["MIT", "OR"]
    assert data["normalized"] is None
    assert "at token 2" in data["error"]
