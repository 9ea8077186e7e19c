"""Tests for static resources and prompts."""

import json

import pytest

from librechat_client_mcp import catalog
from librechat_client_mcp.config import RepositoryConfig
from librechat_client_mcp.errors import UnknownOperationError, ValidationError
from librechat_client_mcp.repository import ClientPaths

PATHS = ClientPaths.for_base("packages/client")


def test_modules_resource_is_json_with_configured_paths():
    content, mime_type = catalog.read_catalog_resource(
        catalog.MODULES_URI, PATHS, RepositoryConfig()
    )

    modules = json.loads(content)
    assert mime_type == "application/json"
    assert modules["hooks"]["path"] == "packages/client/src/hooks"
    assert modules["Providers"]["path"] == "packages/client/src/Providers"


def test_text_resources():
    structure, mime_type = catalog.read_catalog_resource(
        catalog.PACKAGE_STRUCTURE_URI, PATHS, RepositoryConfig()
    )
    guide, _ = catalog.read_catalog_resource(
        catalog.INSTALLATION_GUIDE_URI, PATHS, RepositoryConfig()
    )

    assert mime_type == "text/plain"
    assert structure
    assert guide


def test_unknown_resource():
    with pytest.raises(UnknownOperationError):
        catalog.read_catalog_resource("resource:nope", PATHS, RepositoryConfig())


def test_resource_listing_uris():
    uris = {str(r.uri).rstrip("/") for r in catalog.get_resource_definitions()}
    templates = {t.uriTemplate for t in catalog.get_resource_template_definitions()}

    assert catalog.MODULES_URI in uris
    assert catalog.PACKAGE_STRUCTURE_URI in uris
    assert catalog.INSTALLATION_GUIDE_URI in templates


def test_prompt_renders_single_user_message():
    result = catalog.render_prompt("implement-feature", {"feature": "dark mode toggle"})

    assert len(result.messages) == 1
    assert result.messages[0].role == "user"
    assert "dark mode toggle" in result.messages[0].content.text


def test_prompt_with_optional_argument_omitted():
    result = catalog.render_prompt("explore-components", None)
    assert result.messages[0].content.text


def test_prompt_missing_required_argument():
    with pytest.raises(ValidationError, match="feature: Field required"):
        catalog.render_prompt("implement-feature", {"feature": "  "})


def test_unknown_prompt():
    with pytest.raises(UnknownOperationError):
        catalog.render_prompt("nope", {})


def test_every_prompt_definition_has_a_renderer():
    for prompt in catalog.get_prompt_definitions():
        arguments = {a.name: "x" for a in prompt.arguments or []}
        assert catalog.render_prompt(prompt.name, arguments).messages


def test_resource_uris_use_resource_scheme():
    assert catalog.MODULES_URI == "resource:get_modules"
    assert catalog.PACKAGE_STRUCTURE_URI == "resource:get_package_structure"
    assert catalog.INSTALLATION_GUIDE_URI == "resource-template:get_installation_guide"


def test_implement_librechat_feature_defaults_to_react():
    text = catalog.render_prompt(
        "implement-librechat-feature", {"feature": "send-message"}
    ).messages[0].content.text

    assert '"send-message" feature using LibreChat Client in react' in text
    assert "React hooks" in text


def test_implement_librechat_feature_with_framework():
    text = catalog.render_prompt(
        "implement-librechat-feature", {"feature": "send-message", "framework": "vue"}
    ).messages[0].content.text

    assert "in vue" in text
    assert "Composition API" in text


def test_understand_api_endpoint_requires_endpoint():
    text = catalog.render_prompt("understand-api-endpoint", {"endpoint": "messages"})
    assert "messages API endpoint" in text.messages[0].content.text

    with pytest.raises(ValidationError, match="endpoint: Field required"):
        catalog.render_prompt("understand-api-endpoint", {})
