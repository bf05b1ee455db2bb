"""Module selection and installer options.

A ModuleSelection is computed once from parsed command-line flags and
then passed, unchanged, to the planner and the installer.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum


class Module(Enum):
    """Independently toggleable package bundles."""

    BASE = "base"
    KDE = "kde"
    DEV = "dev"
    GAMING = "gaming"
    QOL = "qol"
    GPU = "gpu"
    AUDIO = "audio"
    HW = "hw"


class Addon(Enum):
    """Opt-in extras that are never part of the default set."""

    PRINTING = "printing"
    FLATPAK = "flatpak"
    ZEROTIER = "zerotier"
    TOOLS = "tools"


@dataclass(frozen=True, slots=True)
class ModuleSelection:
    """Which modules and add-ons an installer run covers.

    Attributes:
        modules: Enabled modules.
        addons: Enabled add-ons.
        modular: False in "default mode" (every module on unless skipped),
            True when any module flag narrowed the set.
    """

    modules: frozenset[Module]
    addons: frozenset[Addon] = field(default_factory=frozenset)
    modular: bool = False

    @classmethod
    def from_flags(
        cls,
        with_modules: Iterable[Module] = (),
        *,
        addons: Iterable[Addon] = (),
        no_base: bool = False,
        base_only: bool = False,
        skip_gaming: bool = False,
        skip_qol: bool = False,
    ) -> "ModuleSelection":
        """Build a selection from installer flags.

        Without any module flag every module is enabled. Any
        ``--with-<module>``, ``--no-base`` or ``--base-only`` switches to
        modular mode, where base stays on unless ``--no-base`` is given and
        only the named modules are added. ``--base-only`` drops every named
        module. The skip flags apply in both modes.

        Args:
            with_modules: Modules named with ``--with-<module>``.
            addons: Add-ons named with ``--with-<addon>``.
            no_base: ``--no-base`` was given.
            base_only: ``--base-only`` was given.
            skip_gaming: ``--skip-gaming`` was given.
            skip_qol: ``--skip-qol`` was given.

        Returns:
            The resulting selection.
        """
        requested = {m for m in with_modules if m is not Module.BASE}
        modular = bool(requested) or no_base or base_only

        if not modular:
            enabled = set(Module)
        else:
            enabled = set() if base_only else set(requested)
            if base_only or not no_base:
                enabled.add(Module.BASE)

        if skip_gaming:
            enabled.discard(Module.GAMING)
        if skip_qol:
            enabled.discard(Module.QOL)

        return cls(modules=frozenset(enabled), addons=frozenset(addons), modular=modular)

    def has(self, item: Module | Addon) -> bool:
        """Check if a module or add-on is enabled."""
        if isinstance(item, Module):
            return item in self.modules
        return item in self.addons

    @property
    def mode(self) -> str:
        """Human-readable mode name."""
        return "modular" if self.modular else "default"


@dataclass(frozen=True, slots=True)
class InstallOptions:
    """Everything an installer run needs besides its collaborators.

    Attributes:
        selection: Modules and add-ons to install.
        dry_run: Print mutating actions instead of performing them.
        assume_yes: Take every default without prompting.
        skip_dotnet: Leave out the .NET SDK group.
        skip_code: Leave out the VS Code OSS group.
        show_reboot_note: Print the reboot recommendation at the end.
        default_locale: Locale offered (or taken under assume_yes).
        default_timezone: Time zone offered (or taken under assume_yes).
        flatpak_apps: Flathub application IDs installed with Flatpak support.
        invoking_user: Non-root user who ran sudo, for XDG dir refresh.
    """

    selection: ModuleSelection
    dry_run: bool = False
    assume_yes: bool = False
    skip_dotnet: bool = False
    skip_code: bool = False
    show_reboot_note: bool = True
    default_locale: str = "en_US.UTF-8"
    default_timezone: str = "UTC"
    flatpak_apps: tuple[str, ...] = ()
    invoking_user: str | None = None
