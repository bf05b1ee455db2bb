"""Translate a module selection into package groups and services."""

from archforge.models import catalog
from archforge.models.catalog import PackageGroup, ServiceSpec
from archforge.models.modules import Addon, InstallOptions, Module


def plan_groups(options: InstallOptions) -> list[PackageGroup]:
    """Return the package groups to install, in install order.

    The order is fixed: base, KDE, audio, hardware, dev, GPU, gaming,
    QoL, then the add-ons (printing, Flatpak, ZeroTier, desktop tools).

    Args:
        options: Installer options carrying the module selection.

    Returns:
        Package groups; modules that are off contribute nothing.
    """
    selection = options.selection
    groups: list[PackageGroup] = []

    if selection.has(Module.BASE):
        groups += [catalog.CORE, catalog.BUILD, catalog.NETWORK]
    if selection.has(Module.KDE):
        groups += [catalog.KDE_WAYLAND, catalog.KDE_APPS]
    if selection.has(Module.AUDIO):
        groups.append(catalog.AUDIO)
    if selection.has(Module.HW):
        groups.append(catalog.HW_SUPPORT)
    if selection.has(Module.DEV):
        groups.append(catalog.DEV_CORE)
        if not options.skip_dotnet:
            groups.append(catalog.DOTNET)
        if not options.skip_code:
            groups.append(catalog.EDITOR)
    if selection.has(Module.GPU):
        groups.append(catalog.GPU_INTEL_NVIDIA)
    if selection.has(Module.GAMING):
        groups.append(catalog.GAMING)
    if selection.has(Module.QOL):
        groups.append(catalog.QOL)
    if selection.has(Addon.PRINTING):
        groups.append(catalog.PRINTING)
    if selection.has(Addon.FLATPAK):
        groups.append(catalog.FLATPAK)
    if selection.has(Addon.ZEROTIER):
        groups.append(catalog.ZEROTIER)
    if selection.has(Addon.TOOLS):
        groups += catalog.TOOLS

    return groups


def skipped_modules(options: InstallOptions) -> list[Module]:
    """Modules left out of this run, in catalog order."""
    return [m for m in Module if not options.selection.has(m)]


def plan_services(options: InstallOptions) -> list[ServiceSpec]:
    """Return the units to enable after installation.

    The base services are always attempted; add-ons contribute their own.
    A unit named by more than one add-on is listed once. Each unit is
    enabled only if present on the host.
    """
    candidates = list(catalog.BASE_SERVICES)
    if options.selection.has(Addon.PRINTING):
        candidates += catalog.PRINTING_SERVICES
    if options.selection.has(Addon.ZEROTIER):
        candidates += catalog.ZEROTIER_SERVICES
    if options.selection.has(Addon.TOOLS):
        candidates += catalog.TOOLS_SERVICES

    services: list[ServiceSpec] = []
    seen: set[str] = set()
    for spec in candidates:
        if spec.unit not in seen:
            seen.add(spec.unit)
            services.append(spec)
    return services


def wants_flatpak(options: InstallOptions) -> bool:
    """Check if the run sets up Flathub (Flatpak add-on or desktop tools)."""
    return options.selection.has(Addon.FLATPAK) or options.selection.has(Addon.TOOLS)


def plan_flatpak_apps(options: InstallOptions) -> list[str]:
    """Flathub application IDs to install, configured apps first.

    The configured list applies to the Flatpak add-on; desktop tools add
    their own browser and permission manager.
    """
    apps: list[str] = []
    if options.selection.has(Addon.FLATPAK):
        apps += options.flatpak_apps
    if options.selection.has(Addon.TOOLS):
        apps += catalog.TOOLS_FLATPAK_APPS
    return list(dict.fromkeys(apps))
