"""Unit tests for the install planner."""

from archforge.installer.planner import (
    plan_flatpak_apps,
    plan_groups,
    plan_services,
    skipped_modules,
    wants_flatpak,
)
from archforge.models import catalog
from archforge.models.modules import Addon, InstallOptions, Module, ModuleSelection


def _options(*modules: Module, **kwargs: object) -> InstallOptions:
    addons = kwargs.pop("addons", ())
    skip_dotnet = bool(kwargs.pop("skip_dotnet", False))
    skip_code = bool(kwargs.pop("skip_code", False))
    selection = ModuleSelection.from_flags(modules, addons=addons, **kwargs)  # type: ignore[arg-type]
    return InstallOptions(selection=selection, skip_dotnet=skip_dotnet, skip_code=skip_code)


class TestPlanGroups:
    """Tests for plan_groups()."""

    def test_default_mode_order(self) -> None:
        groups = plan_groups(_options())
        assert groups == [
            catalog.CORE,
            catalog.BUILD,
            catalog.NETWORK,
            catalog.KDE_WAYLAND,
            catalog.KDE_APPS,
            catalog.AUDIO,
            catalog.HW_SUPPORT,
            catalog.DEV_CORE,
            catalog.DOTNET,
            catalog.EDITOR,
            catalog.GPU_INTEL_NVIDIA,
            catalog.GAMING,
            catalog.QOL,
        ]

    def test_kde_audio_without_base(self) -> None:
        groups = plan_groups(_options(Module.KDE, Module.AUDIO, no_base=True))
        assert groups == [catalog.KDE_WAYLAND, catalog.KDE_APPS, catalog.AUDIO]

    def test_dev_skips(self) -> None:
        groups = plan_groups(_options(Module.DEV, skip_dotnet=True, skip_code=True))
        assert catalog.DEV_CORE in groups
        assert catalog.DOTNET not in groups
        assert catalog.EDITOR not in groups

    def test_addons_come_last(self) -> None:
        groups = plan_groups(_options(addons=[Addon.ZEROTIER, Addon.PRINTING], base_only=True))
        assert groups[-2:] == [catalog.PRINTING, catalog.ZEROTIER]

    def test_tools_groups_after_other_addons(self) -> None:
        groups = plan_groups(_options(addons=[Addon.TOOLS, Addon.ZEROTIER], base_only=True))
        assert groups == [catalog.CORE, catalog.BUILD, catalog.NETWORK, catalog.ZEROTIER, *catalog.TOOLS]
        packages = {name for group in groups for name in group.packages}
        assert {"libreoffice-fresh", "konversation", "remmina", "simple-scan", "docker"} <= packages

    def test_tools_not_in_default_mode(self) -> None:
        assert not set(catalog.TOOLS) & set(plan_groups(_options()))


class TestPlanServices:
    """Tests for plan_services()."""

    def test_base_services_always(self) -> None:
        units = [s.unit for s in plan_services(_options(Module.KDE, no_base=True))]
        assert units == [s.unit for s in catalog.BASE_SERVICES]

    def test_addon_services(self) -> None:
        units = [s.unit for s in plan_services(_options(addons=[Addon.PRINTING, Addon.ZEROTIER]))]
        assert "cups.service" in units
        assert "avahi-daemon.service" in units
        assert units[-1] == "zerotier-one.service"

    def test_tools_services_listed_once(self) -> None:
        """cups is named by both printing and tools but enabled once."""
        units = [s.unit for s in plan_services(_options(addons=[Addon.PRINTING, Addon.TOOLS]))]
        assert units.count("cups.service") == 1
        assert units[-2:] == ["fwupd.service", "docker.service"]
        assert all(s.now for s in catalog.TOOLS_SERVICES)


class TestPlanFlatpak:
    """Tests for wants_flatpak() and plan_flatpak_apps()."""

    def test_no_flatpak_by_default(self) -> None:
        options = _options()
        assert not wants_flatpak(options)
        assert plan_flatpak_apps(options) == []

    def test_tools_add_edge_and_flatseal(self) -> None:
        options = _options(addons=[Addon.TOOLS])
        assert wants_flatpak(options)
        assert plan_flatpak_apps(options) == ["com.microsoft.Edge", "com.github.tchx84.Flatseal"]

    def test_configured_apps_first_without_duplicates(self) -> None:
        selection = ModuleSelection.from_flags(addons=[Addon.FLATPAK, Addon.TOOLS])
        options = InstallOptions(selection=selection, flatpak_apps=("org.kde.kdenlive", "com.microsoft.Edge"))
        assert plan_flatpak_apps(options) == ["org.kde.kdenlive", "com.microsoft.Edge", "com.github.tchx84.Flatseal"]

    def test_configured_apps_need_flatpak_addon(self) -> None:
        selection = ModuleSelection.from_flags(addons=[Addon.TOOLS])
        options = InstallOptions(selection=selection, flatpak_apps=("org.kde.kdenlive",))
        assert "org.kde.kdenlive" not in plan_flatpak_apps(options)


class TestSkippedModules:
    def test_modular(self) -> None:
        skipped = skipped_modules(_options(Module.KDE))
        assert Module.BASE not in skipped
        assert Module.KDE not in skipped
        assert Module.GAMING in skipped
