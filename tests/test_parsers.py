"""Tests for the fail2ban-client output parsers."""

from fail2rest.services.parsers import (
    parse_banned_ips,
    parse_jail_list,
    parse_jail_status,
    parse_server_status,
    split_field,
)

SERVER_STATUS = """Status
|- Number of jail:\t3
`- Jail list:\tsshd, nginx-http-auth, recidive
"""

JAIL_STATUS = """Status for the jail: sshd
|- Filter
|  |- Currently failed:\t1
|  |- Total failed:\t12
|  `- File list:\t/var/log/auth.log
`- Actions
   |- Currently banned:\t2
   |- Total banned:\t7
   `- Banned IP list:\t192.0.2.10 198.51.100.7
"""


class TestSplitField:
    def test_splits_on_first_colon_only(self):
        assert split_field("Journal matches: _SYSTEMD_UNIT=sshd.service + _COMM=sshd") == (
            "Journal matches",
            "_SYSTEMD_UNIT=sshd.service + _COMM=sshd",
        )

    def test_ipv6_value_keeps_its_colons(self):
        assert split_field("`- Banned IP list:\t2001:db8::1") == ("Banned IP list", "2001:db8::1")

    def test_strips_tree_drawing(self):
        assert split_field("   |  |- Total failed:\t12") == ("Total failed", "12")

    def test_line_without_colon(self):
        assert split_field("|- Filter") is None

    def test_line_with_empty_key(self):
        assert split_field(": value") is None


class TestParseServerStatus:
    def test_jail_section_names_and_fields(self):
        jails, fields = parse_server_status("Status for the jail:\njail-one\nNumber of jail: 1\n")

        assert jails == ["jail-one"]
        assert fields == {"Number of jail": "1"}

    def test_comma_separated_names_in_section(self):
        jails, _ = parse_server_status("Status for the jail:\nsshd, recidive\n")

        assert jails == ["sshd", "recidive"]

    def test_colon_free_lines_outside_section_are_ignored(self):
        jails, fields = parse_server_status("Status\nsshd\n")

        assert jails == []
        assert fields == {}

    def test_real_tree_output_yields_fields(self):
        _, fields = parse_server_status(SERVER_STATUS)

        assert fields["Number of jail"] == "3"
        assert fields["Jail list"] == "sshd, nginx-http-auth, recidive"

    def test_values_are_not_coerced(self):
        _, fields = parse_server_status("Number of jail: 0003\n")

        assert fields["Number of jail"] == "0003"

    def test_empty_output(self):
        assert parse_server_status("") == ([], {})


class TestParseJailStatus:
    def test_every_colon_line_is_a_field(self):
        fields = parse_jail_status(JAIL_STATUS)

        assert fields == {
            "Status for the jail": "sshd",
            "Currently failed": "1",
            "Total failed": "12",
            "File list": "/var/log/auth.log",
            "Currently banned": "2",
            "Total banned": "7",
            "Banned IP list": "192.0.2.10 198.51.100.7",
        }

    def test_section_headers_without_colon_are_skipped(self):
        fields = parse_jail_status(JAIL_STATUS)

        assert "Filter" not in fields
        assert "Actions" not in fields

    def test_later_duplicate_key_wins(self):
        assert parse_jail_status("Total banned: 1\nTotal banned: 2\n") == {"Total banned": "2"}


class TestParseJailList:
    def test_names_inline_after_marker(self):
        assert parse_jail_list(SERVER_STATUS) == ["sshd", "nginx-http-auth", "recidive"]

    def test_names_on_following_lines(self):
        assert parse_jail_list("Jail list:\nsshd\nrecidive\n") == ["sshd", "recidive"]

    def test_jail_section_marker_also_starts_list(self):
        assert parse_jail_list("Status for the jail:\njail-one\n") == ["jail-one"]

    def test_colon_lines_after_marker_are_not_names(self):
        output = "Jail list: sshd\nNumber of jail: 1\nrecidive\n"

        assert parse_jail_list(output) == ["sshd", "recidive"]

    def test_no_marker(self):
        assert parse_jail_list("Status\n|- Number of jail:\t0\n") == []


class TestParseBannedIps:
    def test_one_address_per_line(self):
        assert parse_banned_ips("192.0.2.10\n  198.51.100.7  \n\n2001:db8::1\n") == [
            "192.0.2.10",
            "198.51.100.7",
            "2001:db8::1",
        ]

    def test_empty_output(self):
        assert parse_banned_ips("") == []
