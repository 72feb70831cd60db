"""Tests for project path decoding."""

import pytest

from ccsearch.paths import (
    decode_project_path,
    encode_project_path,
    is_plausible_path,
    project_name,
)


@pytest.mark.parametrize(
    "encoded, expected",
    [
        ("-Users-alice-github-com-org-repo", "/Users/alice/github.com/org/repo"),
        (
            "-Users-yuma-go-src-github-com-identifyinc-delmo-backend",
            "/Users/yuma/go/src/github.com/identifyinc/delmo-backend",
        ),
        ("-home-bob-gitlab-com-team-my-service", "/home/bob/gitlab.com/team/my-service"),
        ("-Users-carol-bitbucket-org-acme-api", "/Users/carol/bitbucket.org/acme/api"),
        ("-Users-dan-src-tool", "/Users/dan/src/tool"),
        ("-Users-erin", "/Users/erin"),
    ],
)
def test_decode_known_shapes(encoded, expected):
    assert decode_project_path(encoded) == expected


def test_repo_substructure_is_split():
    decoded = decode_project_path("-Users-alice-github-com-acme-shop-frontend-src")
    assert decoded == "/Users/alice/github.com/acme/shop/frontend/src"


def test_hyphens_inside_repo_names_survive():
    decoded = decode_project_path("-Users-alice-github-com-acme-my-cool-repo")
    assert decoded.endswith("/acme/my-cool-repo")


def test_unknown_shape_is_still_absolute():
    assert decode_project_path("scratch") == "/scratch"
    assert decode_project_path("") == "/"


def test_encode_matches_cli_naming():
    assert encode_project_path("/Users/alice/github.com/org/repo") == "-Users-alice-github-com-org-repo"


def test_encode_then_decode_for_hosted_repo():
    path = "/Users/alice/github.com/org/repo"
    assert decode_project_path(encode_project_path(path)) == path


def test_project_name():
    assert project_name("/Users/alice/github.com/org/repo") == "repo"
    assert project_name("/") == "/"


def test_is_plausible_path():
    assert is_plausible_path("/Users/alice")
    assert not is_plausible_path("/scratch")
    assert not is_plausible_path("relative/path")
