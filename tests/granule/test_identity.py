"""Tests for filename classification."""

import re

import pytest

from granule_watch.errors import ClassificationError, MissingIdGroup, NoPatternMatch
from granule_watch.granule.identity import FileTypeSpec, IdentityExtractor

pytestmark = pytest.mark.unit


def spec(name, pattern, required=True):
    return FileTypeSpec(name=name, id_pattern=re.compile(pattern), required=required)


class TestClassify:

    def test_fragments_concatenated_in_order(self):
        """Each match contributes its id fragment, in order of occurrence."""
        extractor = IdentityExtractor([
            spec("GMTCO", r"(?:^NPP_GMTCO_|(?<=\d))(?P<id>_?[A-Z]\d)"),
        ])

        assert extractor.classify("NPP_GMTCO_A1_B2_C3_D4.h5") == ("GMTCO", "A1_B2_C3_D4")

    def test_only_basename_is_classified(self):
        extractor = IdentityExtractor([spec("SVM10", r"^SVM10_(?P<id>[^_]+)_")])

        assert extractor.classify("/data/SVM10_run/SVM10_abc_x.h5") == ("SVM10", "abc")

    def test_default_viirs_patterns(self, internal_config, make_name, granule_id):
        extractor = IdentityExtractor.from_config(internal_config)

        for product in ("GMTCO", "SVDNB", "SVM10", "SVM16"):
            assert extractor.classify(make_name(product)) == (product, granule_id)

    def test_same_id_across_types(self, internal_config, make_name):
        extractor = IdentityExtractor.from_config(internal_config)

        ids = {extractor.classify(make_name(p))[1] for p in ("SVM07", "SVM08", "IICMO")}
        assert len(ids) == 1

    def test_first_matching_spec_wins(self):
        extractor = IdentityExtractor([
            spec("NARROW", r"^SVM1(?P<id>\d)_"),
            spec("BROAD", r"^SVM(?P<id>\d+)_"),
        ])

        assert extractor.classify("SVM12_x.h5") == ("NARROW", "2")
        assert extractor.classify("SVM07_x.h5") == ("BROAD", "07")

    def test_unanchored_pattern_matches_mid_name(self):
        extractor = IdentityExtractor([
            spec("GMTCO", r"GMTCO_(?P<id>[A-Z]\d_[A-Z]\d_[A-Z]\d_[A-Z]\d)"),
        ])

        assert extractor.classify("NPP_GMTCO_A1_B2_C3_D4.h5") == ("GMTCO", "A1_B2_C3_D4")

    def test_caret_anchors_at_start(self):
        extractor = IdentityExtractor([spec("SVM10", r"^SVM10_(?P<id>[^_]+)_")])

        with pytest.raises(NoPatternMatch):
            extractor.classify("old_SVM10_abc_x.h5")

    def test_no_pattern_match(self, internal_config):
        extractor = IdentityExtractor.from_config(internal_config)

        with pytest.raises(NoPatternMatch) as excinfo:
            extractor.classify("README.txt")
        assert excinfo.value.filename == "README.txt"

    def test_empty_id_capture(self):
        extractor = IdentityExtractor([spec("SVM10", r"^SVM10_(?P<id>\d*)")])

        with pytest.raises(MissingIdGroup) as excinfo:
            extractor.classify("SVM10_abc.h5")
        assert excinfo.value.type_name == "SVM10"

    def test_classification_errors_share_base(self):
        assert issubclass(NoPatternMatch, ClassificationError)
        assert issubclass(MissingIdGroup, ClassificationError)


class TestExtractorSetup:

    def test_required_types_from_config(self, internal_config):
        extractor = IdentityExtractor.from_config(internal_config)

        assert extractor.required_types == internal_config.required_types
        assert "SVM10" in extractor.required_types

    def test_specs_keep_config_order(self, internal_config):
        extractor = IdentityExtractor.from_config(internal_config)

        assert [s.name for s in extractor.specs] == [ft.name for ft in internal_config.file_types]

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            IdentityExtractor([spec("A", r"^A(?P<id>\d)"), spec("A", r"^B(?P<id>\d)")])

    def test_spec_is_immutable(self):
        s = spec("A", r"^A(?P<id>\d)")
        with pytest.raises(Exception):
            s.name = "B"
