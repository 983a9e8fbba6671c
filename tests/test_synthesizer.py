"""
End-to-end pipeline tests: error policy, fail-fast and partial results.
"""
import os

from topomap.logger import RecordingLogger
from topomap.models.errors import ErrorKind
from topomap.synthesizer import PoliciesSynthesizer

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")
SHOP = os.path.join(FIXTURES, "shop")
BAD_YAMLS = os.path.join(FIXTURES, "bad_yamls")


class TestPoliciesSynthesizer:
    def setup_method(self):
        self.logger = RecordingLogger()

    def test_bad_path_is_fatal(self, tmp_path):
        synth = PoliciesSynthesizer(logger=self.logger)
        policies, errs = synth.policies_from_paths(str(tmp_path / "missing"))
        assert policies == []
        assert len(errs) == 1
        assert errs[0].kind == ErrorKind.FAILED_ACCESSING_DIR
        assert errs[0].fatal

    def test_fatal_error_stops_later_paths(self, tmp_path):
        synth = PoliciesSynthesizer(logger=self.logger)
        conns, errs = synth.connections_from_paths([str(tmp_path / "missing"), SHOP])
        assert conns == []
        assert len(errs) == 1

    def test_fail_fast_keeps_first_error_only(self):
        synth = PoliciesSynthesizer(logger=self.logger, fail_fast=True)
        conns, errs = synth.connections_from_paths(BAD_YAMLS)
        assert conns == []
        assert len(errs) == 1
        assert errs[0].kind == ErrorKind.FAILED_SCANNING_RESOURCE

        policies, errs = synth.policies_from_paths(BAD_YAMLS)
        assert policies == []
        assert len(errs) == 1

    def test_best_effort_collects_every_error(self):
        synth = PoliciesSynthesizer(logger=self.logger)
        conns, errs = synth.connections_from_paths(BAD_YAMLS)
        assert [e.kind for e in errs] == [
            ErrorKind.FAILED_SCANNING_RESOURCE,
            ErrorKind.MALFORMED_YAML_DOC,
            ErrorKind.NOT_K8S_RESOURCE,
            ErrorKind.CONFIGMAP_NOT_FOUND,
            ErrorKind.CONFIGMAP_NOT_FOUND,
            ErrorKind.CONFIGMAP_KEY_NOT_FOUND,
        ]
        assert not any(e.fatal for e in errs)
        assert len(conns) == 1
        assert conns[0].target.name == "web"
        assert conns[0].source is None

    def test_best_effort_policies(self):
        synth = PoliciesSynthesizer(logger=self.logger)
        policies, errs = synth.policies_from_paths(BAD_YAMLS)
        assert [p.name for p in policies] == ["web-netpol"]
        assert len(errs) == 6

    def test_irrelevant_resources_only(self):
        synth = PoliciesSynthesizer(logger=self.logger)
        conns, errs = synth.connections_from_paths(
            os.path.join(BAD_YAMLS, "irrelevant_k8s_resources.yaml")
        )
        assert conns == []
        assert [e.kind for e in errs] == [ErrorKind.NO_RESOURCES_FOUND]
        assert not errs[0].fatal

    def test_empty_directory(self, tmp_path):
        conns, errs = PoliciesSynthesizer(logger=self.logger).connections_from_paths(str(tmp_path))
        assert conns == []
        assert errs[0].kind == ErrorKind.NO_YAMLS_FOUND

        conns, errs = PoliciesSynthesizer(logger=self.logger, fail_fast=True).connections_from_paths(
            str(tmp_path)
        )
        assert [e.kind for e in errs] == [ErrorKind.NO_YAMLS_FOUND]

    def test_multiple_roots(self):
        synth = PoliciesSynthesizer(logger=self.logger)
        conns, errs = synth.connections_from_paths([
            os.path.join(SHOP, "frontend.yaml"),
            os.path.join(SHOP, "loadgenerator.yaml"),
        ])
        # shop-config lives in another file
        assert [e.kind for e in errs] == [ErrorKind.CONFIGMAP_NOT_FOUND]
        assert [(c.source.name, c.target.name) for c in conns] == [("loadgenerator", "frontend")]

    def test_errors_property_is_a_copy(self):
        synth = PoliciesSynthesizer(logger=self.logger)
        synth.connections_from_paths(BAD_YAMLS)
        synth.errors.clear()
        assert len(synth.errors) == 6

    def test_exposure_table_is_logged(self):
        PoliciesSynthesizer(logger=self.logger).connections_from_paths(SHOP)
        assert (
            "services exposed by routes and ingresses: "
            "{'shop': {'checkout': False, 'frontend': False}}"
        ) in self.logger.messages("debug")

    def test_errors_are_logged(self):
        PoliciesSynthesizer(logger=self.logger).connections_from_paths(BAD_YAMLS)
        assert len(self.logger.messages("error")) == 1     # malformed document
        assert len(self.logger.messages("warning")) == 5


class TestProcessingError:
    def test_location_and_message(self):
        from topomap.models import errors
        err = errors.malformed_yaml_doc("a/b.yaml", 12, 3, ValueError("boom"))
        assert err.location == "in file: a/b.yaml, line: 12, document: 3"
        assert str(err) == "in file: a/b.yaml, line: 12, document: 3 YAML document is malformed: boom"

    def test_no_location(self):
        from topomap.models import errors
        assert str(errors.no_yamls_found()) == "no yaml files found"

    def test_severity_bits(self):
        from topomap.models import errors
        assert errors.failed_accessing_dir("x", OSError(), is_sub_dir=False).fatal
        assert not errors.failed_accessing_dir("x", OSError(), is_sub_dir=True).fatal
        assert errors.failed_walk_dir("x", OSError()).fatal
        assert errors.failed_reading_file("x", OSError()).severe
        assert not errors.config_map_not_found("ns/cm", "w").severe

    def test_stop_processing(self):
        from topomap.models import errors
        warning = errors.no_yamls_found()
        fatal = errors.failed_walk_dir("x", OSError())
        assert not errors.stop_processing(False, [])
        assert not errors.stop_processing(False, [warning])
        assert errors.stop_processing(True, [warning])
        assert errors.stop_processing(False, [warning, fatal])

    def test_to_dict(self):
        from topomap.models import errors
        d = errors.not_k8s_resource("x.yaml", 0, ValueError("no kind")).to_dict()
        assert d["kind"] == "not_k8s_resource"
        assert d["file"] == "x.yaml"
        assert d["document"] == 0
        assert d["line"] is None
        assert d["cause"] == "no kind"
