"""Unit tests for the locale, time zone and partition steps."""

from unittest.mock import MagicMock, patch

import pytest
from archforge.core.errors import InvalidInputError, PreconditionError
from archforge.core.paths import HostLayout
from archforge.core.report import RunReport
from archforge.installer.system_setup import (
    apply_locale,
    apply_timezone,
    confirm_partitions,
    is_valid_timezone,
    known_locales,
    select_locale,
    select_timezone,
    uncomment_locale,
)
from fakes import RecordingExecutor, ScriptedPrompter


@pytest.fixture
def host(layout: HostLayout, locale_gen_text: str) -> HostLayout:
    """Layout with locale.gen and a small zoneinfo tree."""
    layout.locale_gen.parent.mkdir(parents=True, exist_ok=True)
    layout.locale_gen.write_text(locale_gen_text)
    (layout.zoneinfo / "Europe").mkdir(parents=True)
    (layout.zoneinfo / "Europe" / "Warsaw").write_text("")
    (layout.zoneinfo / "UTC").write_text("")
    return layout


class TestPartitions:
    def test_decline_aborts(self) -> None:
        with pytest.raises(PreconditionError, match="Prepare partitions"):
            confirm_partitions(ScriptedPrompter([False]), RunReport())

    def test_assume_yes_skips_prompt(self) -> None:
        prompter = ScriptedPrompter(assume_yes=True)
        confirm_partitions(prompter, RunReport())
        assert prompter.questions == []


class TestLocale:
    """Tests for locale validation and configuration."""

    def test_known_locales(self, host: HostLayout) -> None:
        assert {"en_US.UTF-8", "de_DE.UTF-8", "en_US", "pl_PL.UTF-8"} <= known_locales(host.locale_gen)
        assert "Configuration" not in known_locales(host.locale_gen)

    def test_retry_then_accept(self, host: HostLayout) -> None:
        """Invalid answers warn and ask again."""
        report = RunReport()
        prompter = ScriptedPrompter(["xx_XX.UTF-8", "pl_PL.UTF-8"])

        locale = select_locale(prompter, host, "en_US.UTF-8", report)

        assert locale == "pl_PL.UTF-8"
        assert len(prompter.questions) == 2
        assert report.steps_with_warnings() == ["locale"]

    def test_empty_answer_takes_default(self, host: HostLayout) -> None:
        locale = select_locale(ScriptedPrompter([""]), host, "de_DE.UTF-8", RunReport())
        assert locale == "de_DE.UTF-8"

    def test_three_invalid_attempts(self, host: HostLayout) -> None:
        prompter = ScriptedPrompter(["a", "b", "c", "pl_PL.UTF-8"])

        with pytest.raises(InvalidInputError, match="Too many invalid locale attempts"):
            select_locale(prompter, host, "en_US.UTF-8", RunReport())

        assert prompter.answers == ["pl_PL.UTF-8"]

    def test_invalid_default_under_yes(self, host: HostLayout) -> None:
        """An invalid configured default cannot loop forever under --yes."""
        with pytest.raises(InvalidInputError):
            select_locale(ScriptedPrompter(assume_yes=True), host, "tlh_XX.UTF-8", RunReport())

    def test_uncomment_only_matching(self) -> None:
        text = "#de_DE.UTF-8 UTF-8\n#en_US.UTF-8 UTF-8\n#en_US ISO-8859-1\n"
        assert uncomment_locale(text, "en_US.UTF-8") == "#de_DE.UTF-8 UTF-8\nen_US.UTF-8 UTF-8\n#en_US ISO-8859-1\n"

    def test_apply_locale(self, host: HostLayout, executor: RecordingExecutor) -> None:
        apply_locale(executor, host, "pl_PL.UTF-8", RunReport())

        assert "\npl_PL.UTF-8 UTF-8\n" in executor.writes[host.locale_gen]
        assert executor.commands == [("locale-gen",)]
        assert executor.writes[host.locale_conf] == "LANG=pl_PL.UTF-8\n"


class TestTimezone:
    """Tests for time zone validation and configuration."""

    @pytest.mark.parametrize(
        ("zone", "valid"),
        [("Europe/Warsaw", True), ("UTC", True), ("Mars/Olympus", False), ("../../etc/passwd", False), ("/UTC", False)],
    )
    def test_is_valid_timezone(self, host: HostLayout, zone: str, valid: bool) -> None:
        assert is_valid_timezone(host, zone) is valid

    def test_retry_then_accept(self, host: HostLayout) -> None:
        report = RunReport()
        zone = select_timezone(ScriptedPrompter(["Europe/Nowhere", "Europe/Warsaw"]), host, "UTC", report)
        assert zone == "Europe/Warsaw"
        assert report.steps_with_warnings() == ["timezone"]

    @patch("archforge.installer.system_setup.command_exists", return_value=True)
    def test_apply_timezone(self, _exists: MagicMock, host: HostLayout, executor: RecordingExecutor) -> None:
        apply_timezone(executor, host, "Europe/Warsaw", RunReport())

        assert executor.commands == [
            ("ln", "-sf", str(host.zoneinfo / "Europe/Warsaw"), str(host.localtime)),
            ("timedatectl", "set-timezone", "Europe/Warsaw"),
            ("hwclock", "--systohc"),
        ]

    @patch("archforge.installer.system_setup.command_exists", return_value=False)
    def test_hwclock_failure_is_advisory(self, _exists: MagicMock, host: HostLayout) -> None:
        executor = RecordingExecutor(fail_programs={"hwclock"})
        report = RunReport()

        apply_timezone(executor, host, "UTC", report)

        assert report.steps_with_warnings() == ["hwclock"]
        assert not executor.ran("timedatectl")
