"""Hard-coded package groups and service mappings."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PackageGroup:
    """A labelled, ordered list of package candidates.

    Attributes:
        label: Name shown when the group is installed.
        packages: Candidate package names in install order.
    """

    label: str
    packages: tuple[str, ...]

    def __post_init__(self) -> None:
        """Validate group data after initialization."""
        if not self.label:
            msg = "Package group label cannot be empty"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class ServiceSpec:
    """A systemd unit to enable.

    Attributes:
        unit: Unit name, e.g. "NetworkManager.service".
        now: Also start the unit immediately (``enable --now``).
    """

    unit: str
    now: bool = False


def _group(label: str, packages: str) -> PackageGroup:
    return PackageGroup(label, tuple(packages.split()))


# -- installer groups ----------------------------------------------------------

CORE = _group(
    "Core tools",
    """
    sudo bash-completion nano vim neovim curl wget rsync openssh unzip 7zip
    htop btop fastfetch lsof strace ltrace tree chrony man-db man-pages reflector
    """,
)

BUILD = _group(
    "Build toolchain (base-devel-like)",
    """
    autoconf automake binutils bison debugedit fakeroot file findutils flex gawk
    gcc gettext grep groff gzip libtool m4 make patch pkgconf sed texinfo which
    """,
)

NETWORK = _group(
    "Networking tools",
    "networkmanager nmap tcpdump traceroute bind net-tools mosh",
)

KDE_WAYLAND = _group(
    "KDE Plasma + Wayland",
    """
    plasma-meta sddm sddm-kcm xdg-user-dirs xorg-xwayland wl-clipboard
    qt5-wayland qt6-wayland xdg-desktop-portal xdg-desktop-portal-kde
    xdg-desktop-portal-gtk
    """,
)

KDE_APPS = _group(
    "KDE Apps",
    """
    dolphin konsole kate ark okular gwenview spectacle kcalc filelight
    kdeconnect kio-admin partitionmanager
    """,
)

AUDIO = _group(
    "Audio (PipeWire)",
    "pipewire wireplumber pipewire-alsa pipewire-pulse pipewire-jack pavucontrol",
)

HW_SUPPORT = _group(
    "Hardware support / filesystems",
    """
    bluez bluez-utils fwupd power-profiles-daemon ntfs-3g exfatprogs dosfstools
    mtools btrfs-progs
    """,
)

PRINTING = _group(
    "Printing stack",
    "cups print-manager system-config-printer avahi nss-mdns",
)

DEV_CORE = _group(
    "Dev core (C/C++/Python/Node/etc.)",
    """
    git git-lfs ripgrep fd fzf bat jq cmake ninja clang lld llvm gdb valgrind
    python python-pip python-virtualenv python-pipx nodejs npm pnpm sqlite
    postgresql-libs mariadb-clients httpie
    """,
)

DOTNET = _group(".NET SDK", "dotnet-sdk")

EDITOR = _group("Editor (VS Code OSS)", "code")

QOL = _group(
    "QoL apps",
    """
    firefox chromium mpv vlc obs-studio remmina freerdp discord telegram-desktop
    qbittorrent noto-fonts noto-fonts-cjk noto-fonts-emoji ttf-dejavu
    ttf-liberation ttf-fira-code ttf-jetbrains-mono
    """,
)

GPU_INTEL_NVIDIA = _group(
    "GPU stack (Intel + NVIDIA)",
    """
    linux-headers mesa lib32-mesa vulkan-icd-loader lib32-vulkan-icd-loader
    vulkan-tools mesa-utils vulkan-intel lib32-vulkan-intel intel-media-driver
    nvidia-open nvidia-utils lib32-nvidia-utils nvidia-settings
    libva-nvidia-driver opencl-nvidia lib32-opencl-nvidia
    """,
)

GAMING = _group(
    "Gaming stack",
    """
    steam steam-devices gamemode lib32-gamemode mangohud lib32-mangohud
    gamescope wine winetricks cabextract innoextract
    """,
)

FLATPAK = _group("Flatpak support", "flatpak flatpak-kcm")

ZEROTIER = _group("ZeroTier", "zerotier-one")

# -- desktop tools add-on ------------------------------------------------------

TOOLS_OFFICE = _group(
    "Office (LibreOffice)",
    """
    libreoffice-fresh libreoffice-fresh-pl libreoffice-fresh-en-gb hunspell
    hunspell-pl hunspell-en_gb hyphen hyphen-pl hyphen-en mythes-pl mythes-en
    """,
)

TOOLS_COMMS = _group(
    "Browsers / mail / IRC",
    """
    firefox thunderbird thunderbird-i18n-pl thunderbird-i18n-en-gb
    telegram-desktop konversation weechat
    """,
)

TOOLS_REMOTE = _group(
    "Remote access",
    "krdc remmina freerdp tigervnc openssh sshfs samba",
)

TOOLS_PRINT_SCAN = _group(
    "Printing / scanning",
    "cups system-config-printer sane simple-scan hplip",
)

TOOLS_SOFTWARE_CENTER = _group(
    "Software center / firmware",
    "discover packagekit-qt6 flatpak flatpak-kcm fwupd qt6-webengine qt6-webchannel",
)

TOOLS_CONTAINERS = _group("Containers", "docker docker-compose")

TOOLS_EXTRAS = _group(
    "Desktop extras",
    """
    dolphin-plugins plasma-browser-integration kio-extras ffmpegthumbs
    qt6-imageformats flameshot qalculate-qt sqlitebrowser
    """,
)

TOOLS: tuple[PackageGroup, ...] = (
    TOOLS_OFFICE,
    TOOLS_COMMS,
    TOOLS_REMOTE,
    TOOLS_PRINT_SCAN,
    TOOLS_SOFTWARE_CENTER,
    TOOLS_CONTAINERS,
    TOOLS_EXTRAS,
)

TOOLS_FLATPAK_APPS: tuple[str, ...] = ("com.microsoft.Edge", "com.github.tchx84.Flatseal")

# Refreshed on its own before a large install so new signing keys are known.
KEYRING = "archlinux-keyring"

# -- repair sets ---------------------------------------------------------------

# Packages that would otherwise make pacman ask which provider to use.
PROVIDER_PRESEED = _group("Provider pre-seed", "noto-fonts qt6-multimedia-ffmpeg wireplumber")

# Without pipewire-jack: that one is added only when jack2 is absent.
PIPEWIRE_STACK = _group(
    "PipeWire stack",
    "pipewire wireplumber pipewire-alsa pipewire-pulse pavucontrol",
)

PIPEWIRE_JACK = "pipewire-jack"
LEGACY_JACK = "jack2"

NVIDIA_DRIVERS = ("nvidia-open", "nvidia")

INETUTILS = "inetutils"

# Placeholder in LOGIN_GRAPHICS_STACK, replaced by the detected driver.
NVIDIA_DRIVER_SLOT = "{nvidia-driver}"

LOGIN_GRAPHICS_STACK = _group(
    "Login / graphics stack",
    """
    plasma-meta sddm sddm-kcm plasma-x11-session kwin-x11 xorg-xwayland
    xdg-user-dirs xdg-desktop-portal xdg-desktop-portal-kde
    xdg-desktop-portal-gtk networkmanager bluez bluez-utils linux-headers mesa
    lib32-mesa vulkan-icd-loader lib32-vulkan-icd-loader vulkan-tools
    mesa-utils vulkan-intel lib32-vulkan-intel intel-media-driver
    {nvidia-driver} nvidia-utils lib32-nvidia-utils nvidia-settings egl-wayland
    libva-nvidia-driver util-linux
    """,
)


def with_driver(group: PackageGroup, driver: str) -> PackageGroup:
    """Return a copy of group with the driver placeholder filled in."""
    packages = tuple(driver if p == NVIDIA_DRIVER_SLOT else p for p in group.packages)
    return PackageGroup(group.label, packages)

# Vulkan / VA-API userspace per GPU vendor, as reported by lspci.
GPU_VENDOR_PACKAGES: dict[str, PackageGroup] = {
    "amd": _group(
        "AMD Vulkan / VA-API",
        "vulkan-radeon lib32-vulkan-radeon libva-mesa-driver lib32-libva-mesa-driver",
    ),
    "intel": _group("Intel Vulkan / VA-API", "vulkan-intel lib32-vulkan-intel intel-media-driver"),
    "nvidia": _group("NVIDIA userspace", "nvidia-utils lib32-nvidia-utils egl-wayland"),
}

# Any one of these provides the NVIDIA kernel module.
NVIDIA_KERNEL_DRIVERS: tuple[str, ...] = (
    "nvidia",
    "nvidia-lts",
    "nvidia-dkms",
    "nvidia-open",
    "nvidia-open-lts",
    "nvidia-open-dkms",
)


# -- services ------------------------------------------------------------------

BASE_SERVICES: tuple[ServiceSpec, ...] = (
    ServiceSpec("NetworkManager.service", now=True),
    ServiceSpec("sddm.service"),
    ServiceSpec("bluetooth.service", now=True),
    ServiceSpec("chronyd.service"),
    ServiceSpec("fstrim.timer"),
)

PRINTING_SERVICES: tuple[ServiceSpec, ...] = (
    ServiceSpec("cups.service", now=True),
    ServiceSpec("avahi-daemon.service", now=True),
)

ZEROTIER_SERVICES: tuple[ServiceSpec, ...] = (ServiceSpec("zerotier-one.service", now=True),)

TOOLS_SERVICES: tuple[ServiceSpec, ...] = (
    ServiceSpec("cups.service", now=True),
    ServiceSpec("fwupd.service", now=True),
    ServiceSpec("docker.service", now=True),
)

# The repair tool enables NetworkManager, then the chosen display manager,
# then the optional units; only failures on the optional ones are advisory.
REPAIR_REQUIRED_SERVICES: tuple[ServiceSpec, ...] = (ServiceSpec("NetworkManager.service", now=True),)

REPAIR_OPTIONAL_SERVICES: tuple[ServiceSpec, ...] = (
    ServiceSpec("bluetooth.service", now=True),
    ServiceSpec("fstrim.timer"),
)

# Display managers the repair tool can select, in preference order.
DISPLAY_MANAGERS: tuple[str, ...] = ("sddm.service", "plasmalogin.service")

# Every display manager that must not compete with the selected one.
COMPETING_DISPLAY_MANAGERS: tuple[str, ...] = (
    "gdm.service",
    "lightdm.service",
    "lxdm.service",
    "ly.service",
    "sddm.service",
    "plasmalogin.service",
)

GRAPHICAL_TARGET = "graphical.target"

COMMON_GROUPS: tuple[str, ...] = (
    "wheel",
    "audio",
    "video",
    "input",
    "render",
    "storage",
    "optical",
    "lp",
    "scanner",
    "uucp",
    "network",
    "docker",
)

# The standalone group helper leaves docker out.
HELPER_GROUPS: tuple[str, ...] = tuple(g for g in COMMON_GROUPS if g != "docker")
