"""Tests for URL security warnings."""

import logging

import pytest

from makemcp.security import check_url_security, warn_url_security


class TestCheckURLSecurity:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("http://localhost:8080/api", ["localhost"]),
            ("http://127.0.0.1/", ["localhost"]),
            ("http://[::1]/", ["localhost"]),
            ("https://10.1.2.3/", ["private_ip"]),
            ("https://172.20.0.1/", ["private_ip"]),
            ("https://192.168.1.10/", ["private_ip"]),
            ("http://169.254.169.254/latest", ["cloud_metadata", "link_local"]),
            ("http://169.254.10.1/", ["link_local"]),
            ("http://metadata.google.internal/", ["cloud_metadata"]),
            ("http://100.100.100.200/", ["cloud_metadata"]),
            ("https://api.example.com/v1", []),
            ("https://8.8.8.8/", []),
        ],
    )
    def test_classifies_hosts(self, url, expected):
        assert [issue.type for issue in check_url_security(url)] == expected

    def test_file_paths_are_ignored(self):
        assert check_url_security("./openapi.json") == []
        assert check_url_security("/etc/openapi.yaml") == []


class TestWarnURLSecurity:
    def test_logs_one_line_per_issue(self, caplog):
        with caplog.at_level(logging.WARNING, logger="makemcp.security"):
            issues = warn_url_security("http://169.254.169.254/", "Base URL")

        assert len(issues) == 2
        messages = [record.getMessage() for record in caplog.records]
        assert messages[0] == "SECURITY WARNING: Base URL URL has potential security concerns:"
        assert "   - cloud_metadata: URL points to cloud metadata endpoint" in messages
        assert "   - link_local: URL points to link-local address" in messages
        assert "   URL: http://169.254.169.254/" in messages

    def test_dev_mode_suppresses_warnings(self, caplog):
        with caplog.at_level(logging.WARNING, logger="makemcp.security"):
            issues = warn_url_security("http://localhost/", "OpenAPI spec", dev_mode=True)

        assert issues == []
        assert caplog.records == []
