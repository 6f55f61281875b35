"""Tests for the collector registry."""

import pytest

from phenospine.core.errors import CollectorError, ErrorCategory
from phenospine.transform.collecting import (
    DEFAULT_COLLECTORS,
    Collector,
    get_collector,
    list_collectors,
    register_collector,
)


class TestCollectorRegistry:
    def test_defaults_are_registered(self):
        assert set(DEFAULT_COLLECTORS) <= set(list_collectors())

    @pytest.mark.parametrize("name", DEFAULT_COLLECTORS)
    def test_get_collector(self, name):
        collector = get_collector(name)
        assert collector.name == name
        assert isinstance(collector, Collector)

    def test_unknown_collector(self):
        with pytest.raises(CollectorError, match="Available") as exc_info:
            get_collector("biosample")
        assert exc_info.value.category == ErrorCategory.PIPELINE
        assert exc_info.value.context.collector == "biosample"

    def test_duplicate_registration(self):
        with pytest.raises(ValueError, match="already registered"):

            @register_collector("individual")
            class Again:
                def collect(self, builder, patient_slices, patient_id):
                    pass

    def test_register_sets_name(self):
        @register_collector("biosample")
        class BiosampleCollector:
            def collect(self, builder, patient_slices, patient_id):
                pass

        assert BiosampleCollector.name == "biosample"
        assert isinstance(get_collector("biosample"), BiosampleCollector)
