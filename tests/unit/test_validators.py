"""
Unit tests for validators module.
"""

import pytest

from cephshare.exceptions import InvalidVolumeName
from cephshare.lib.validators import validate_name


class TestValidateName:
    """Tests for validate_name function."""

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["vol1", "my-vol_1.data", "mon1/shares/a", "10.0.0.1:6789/data"])
    def test_valid_names(self, name):
        validate_name(name)

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["", "/abs", "a//b", "../etc", "vol 1", "a/./b", "vol$"])
    def test_invalid_names(self, name):
        with pytest.raises(InvalidVolumeName):
            validate_name(name)

    @pytest.mark.unit
    def test_too_long(self):
        with pytest.raises(InvalidVolumeName, match="at most 255"):
            validate_name("a" * 256)

    @pytest.mark.unit
    def test_is_value_error(self):
        with pytest.raises(ValueError):
            validate_name("")
