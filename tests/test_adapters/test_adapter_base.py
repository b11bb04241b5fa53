import pytest
from archstore.adapters import get_adapters
from archstore.adapters.aur_adapter import AurAdapter
from archstore.adapters.base import validate_package_name, validate_flatpak_id, pacman_remove_argv
from archstore.adapters.flatpak_adapter import FlatpakAdapter
from archstore.adapters.pacman_adapter import PacmanAdapter


class TestNameValidation:
    """Tests for name validation before anything is spawned"""

    @pytest.mark.security
    def test_valid_arch_names(self):
        for name in ["htop", "lib32-mesa", "python-pyqt5", "gtk+", "r8168-dkms", "xorg-server", "libc++", "a.b_c@d"]:
            assert validate_package_name(name) == True, name

    @pytest.mark.security
    def test_invalid_arch_names(self):
        for name in ["", "-Syu", ".hidden", "Htop", "htop; rm -rf /", "htop && whoami", "$(id)",
                     "`whoami`", "htop\nrm", "../etc/passwd", "a b", "a" * 256]:
            assert validate_package_name(name) == False, name

    @pytest.mark.security
    def test_flatpak_ids(self):
        assert validate_flatpak_id("org.mozilla.firefox") == True
        assert validate_flatpak_id("com.example.App-Name") == True
        assert validate_flatpak_id("firefox") == False
        assert validate_flatpak_id("org.test && whoami") == False
        assert validate_flatpak_id("org/mozilla/firefox") == False
        assert validate_flatpak_id("") == False


class TestRemoveArguments:
    """Tests for the pacman removal form"""

    @pytest.mark.unit
    def test_recursive(self):
        assert pacman_remove_argv("htop", "recursive") == ['pacman', '-Rns', '--noconfirm', 'htop']

    @pytest.mark.unit
    def test_plain(self):
        assert pacman_remove_argv("htop", "plain") == ['pacman', '-R', '--noconfirm', 'htop']

    @pytest.mark.unit
    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            pacman_remove_argv("htop", "cascade")


@pytest.mark.unit
def test_get_adapters_shares_resolver(resolver, settings):
    adapters = get_adapters(resolver, settings)

    assert isinstance(adapters["official"], PacmanAdapter)
    assert isinstance(adapters["aur"], AurAdapter)
    assert isinstance(adapters["flatpak"], FlatpakAdapter)
    assert all(adapter.resolver is resolver for adapter in adapters.values())
    assert all(adapter.source == source for source, adapter in adapters.items())
