"""Tests for the SSL / managed-host policy."""

import pytest

from db.ssl_policy import (
    host_from_url,
    is_managed_host,
    normalize_database_url,
    should_use_ssl,
)

RENDER_URL = "postgresql://u:p@dpg-abc123-a.oregon-postgres.render.com/app"


class TestManagedHost:

    @pytest.mark.parametrize("host", [
        "dpg-abc123-a.oregon-postgres.render.com",
        "DPG-ABC.FRANKFURT-POSTGRES.RENDER.COM",
        "render-db.internal",
    ])
    def test_recognized(self, host):
        assert is_managed_host(host) is True

    @pytest.mark.parametrize("host", ["localhost", "127.0.0.1", "db.example.org", "", None])
    def test_not_recognized(self, host):
        assert is_managed_host(host) is False

    def test_host_from_url(self):
        assert host_from_url(RENDER_URL) == "dpg-abc123-a.oregon-postgres.render.com"
        assert host_from_url("") is None


class TestShouldUseSsl:

    def test_uri_requests_ssl(self):
        assert should_use_ssl("postgresql://u:p@localhost/app?sslmode=require", None, "development")

    def test_managed_host_in_uri(self):
        assert should_use_ssl(RENDER_URL, None, "development")

    def test_managed_discrete_host(self):
        assert should_use_ssl(None, "dpg-x.render.com", "development")

    def test_production_environment(self):
        assert should_use_ssl(None, "localhost", "production")

    @pytest.mark.parametrize("mode", ["require", "verify-ca", "verify-full", "VERIFY-FULL"])
    def test_any_tls_sslmode_counts(self, mode):
        assert should_use_ssl(f"postgresql://u:p@localhost/app?sslmode={mode}", None, "development")

    @pytest.mark.parametrize("mode", ["disable", "allow", "prefer"])
    def test_explicit_non_tls_sslmode_wins(self, mode):
        url = f"postgresql://u:p@dpg-x.render.com/app?application_name=bot&sslmode={mode}"
        assert not should_use_ssl(url, None, "production")

    def test_local_development(self):
        assert not should_use_ssl("postgresql://u:p@localhost/app", None, "development")
        assert not should_use_ssl(None, "localhost", "development")


class TestNormalize:

    def test_appends_sslmode_for_managed_host(self):
        assert normalize_database_url(RENDER_URL) == RENDER_URL + "?sslmode=require"

    def test_uses_ampersand_when_query_present(self):
        url = RENDER_URL + "?application_name=bot"
        assert normalize_database_url(url) == url + "&sslmode=require"

    def test_existing_sslmode_untouched(self):
        url = RENDER_URL + "?sslmode=verify-full"
        assert normalize_database_url(url) == url

    def test_local_url_untouched(self):
        url = "postgresql://u:p@localhost:5432/app"
        assert normalize_database_url(url) == url
