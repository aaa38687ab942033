"""Test default provider name resolution."""

import pytest

from conftest import make_request
from portico.auth.resolver import default_provider_name
from portico.errors import ProviderNameMissingError


def test_path_param_wins():
    request = make_request(query="provider=gitlab", path_params={"provider": "github"})

    assert default_provider_name(request) == "github"


def test_query_param():
    assert default_provider_name(make_request(query="provider=google")) == "google"


def test_colon_query_param():
    assert default_provider_name(make_request(query="%3Aprovider=discord")) == "discord"


def test_request_state():
    request = make_request()
    request.state.provider = "dev"

    assert default_provider_name(request) == "dev"


def test_missing_name():
    with pytest.raises(ProviderNameMissingError) as exc_info:
        default_provider_name(make_request(query="provider="))

    assert exc_info.value.message == "you must select a provider"
