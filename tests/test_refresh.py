import logging
import sys
import unittest
from pathlib import Path

# Ensure src/ is on sys.path so we can import the package without installation
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))
TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from fake_vcenter import ASSOCIATION, CATEGORY, MGMT_SESSION, VM_LIST, standard_http  # noqa: E402
from vctags.client import VCenter  # noqa: E402
from vctags.config import parse_url  # noqa: E402
from vctags.context import Context  # noqa: E402
from vctags.errors import CancelledError, QueryError, SessionError  # noqa: E402
from vctags.filters import filter_categories  # noqa: E402
from vctags.refresh import RefreshPipeline, build_label_map  # noqa: E402
from vctags.resources.tag_categories_types import Category  # noqa: E402
from vctags.resources.tags_types import AttachedLabel, AttachedLabelSet  # noqa: E402
from vctags.sessions import SessionManager  # noqa: E402


logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stdout,
    force=True,
)


class FilterCategoriesTests(unittest.TestCase):
    def setUp(self) -> None:
        self.categories = [Category("c1", "Env"), Category("c2", "Zone"), Category("c3", "Owner")]

    def test_empty_allowlist_returns_all(self):
        self.assertEqual(filter_categories(self.categories, []), self.categories)
        self.assertEqual(filter_categories(self.categories, None), self.categories)

    def test_allowlist_selects_by_name(self):
        self.assertEqual(filter_categories(self.categories[:2], ["Env"]), [Category("c1", "Env")])

    def test_allowlist_preserves_input_order(self):
        result = filter_categories(self.categories, ["Owner", "Env"])
        self.assertEqual([c.name for c in result], ["Env", "Owner"])

    def test_matching_is_case_sensitive(self):
        self.assertEqual(filter_categories(self.categories, ["env"]), [])


class BuildLabelMapTests(unittest.TestCase):
    def test_resolves_category_names(self):
        attached = [AttachedLabelSet("vm-100", [AttachedLabel("c1", "prod")])]
        self.assertEqual(build_label_map(attached, [Category("c1", "Env")]), {"vm-100": {"Env": "prod"}})

    def test_objects_without_selected_labels_are_omitted(self):
        attached = [
            AttachedLabelSet("vm-100", [AttachedLabel("c1", "prod")]),
            AttachedLabelSet("vm-200", [AttachedLabel("c2", "eu")]),
            AttachedLabelSet("vm-300", []),
        ]
        labels = build_label_map(attached, [Category("c1", "Env")])
        self.assertEqual(labels, {"vm-100": {"Env": "prod"}})
        self.assertNotIn("vm-200", labels)

    def test_unknown_category_is_ignored(self):
        attached = [AttachedLabelSet("vm-1", [AttachedLabel("c1", "prod"), AttachedLabel("zz", "x")])]
        self.assertEqual(build_label_map(attached, [Category("c1", "Env")]), {"vm-1": {"Env": "prod"}})

    def test_empty_inputs(self):
        self.assertEqual(build_label_map([], [Category("c1", "Env")]), {})


class RefreshPipelineTests(unittest.TestCase):
    def setUp(self) -> None:
        self.http = standard_http()
        endpoint = parse_url("https://vc.local/sdk", "user@corp.local", "secret")
        self.sessions = SessionManager(VCenter(endpoint, http=self.http))
        self.pipeline = RefreshPipeline(self.sessions)
        self.ctx = Context()

    def test_run_all_categories(self):
        labels = self.pipeline.run(self.ctx)
        self.assertEqual(labels, {"vm-100": {"Env": "prod"}, "vm-200": {"Zone": "eu"}})

    def test_run_filtered_categories(self):
        self.pipeline.categories = ["Env"]
        self.assertEqual(self.pipeline.run(self.ctx), {"vm-100": {"Env": "prod"}})

    def test_multiple_categories_per_object(self):
        self.http.attachments["vm-100"] = ["t1", "t2"]
        labels = self.pipeline.run(self.ctx)
        self.assertEqual(labels["vm-100"], {"Env": "prod", "Zone": "eu"})

    def test_empty_inventory_yields_empty_map(self):
        self.http.vms = []
        self.assertEqual(self.pipeline.run(self.ctx), {})
        self.assertEqual(self.http.count("POST", ASSOCIATION), 0)

    def test_session_failure_aborts_before_queries(self):
        self.http.failures[("POST", MGMT_SESSION)] = 401
        with self.assertRaises(SessionError):
            self.pipeline.run(self.ctx)
        self.assertEqual(self.http.count("GET", VM_LIST), 0)
        self.assertEqual(self.http.count("GET", CATEGORY), 0)

    def test_category_failure_drops_tagging_session(self):
        self.http.failures[("GET", CATEGORY)] = 500
        with self.assertRaises(QueryError):
            self.pipeline.run(self.ctx)
        self.assertIsNone(self.sessions.tagging)
        self.assertIsNotNone(self.sessions.management)

    def test_inventory_failure_keeps_sessions(self):
        self.http.failures[("GET", VM_LIST)] = 500
        with self.assertRaises(QueryError):
            self.pipeline.run(self.ctx)
        self.assertIsNotNone(self.sessions.tagging)
        self.assertIsNotNone(self.sessions.management)

    def test_attached_tags_failure_keeps_sessions(self):
        self.http.failures[("POST", ASSOCIATION)] = 500
        with self.assertRaises(QueryError):
            self.pipeline.run(self.ctx)
        self.assertIsNotNone(self.sessions.tagging)

    def test_cancellation_observed_between_calls(self):
        def cancel_after_inventory(method, path):
            if path == VM_LIST:
                self.ctx.cancel()
        self.http.on_request = cancel_after_inventory
        with self.assertRaises(CancelledError):
            self.pipeline.run(self.ctx)
        self.assertEqual(self.http.count("POST", ASSOCIATION), 0)

    def test_cancelled_category_fetch_keeps_tagging_session(self):
        def cancel_during_categories(method, path):
            if path == CATEGORY:
                self.ctx.cancel()
        self.http.on_request = cancel_during_categories
        with self.assertRaises(CancelledError):
            self.pipeline.run(self.ctx)
        self.assertIsNotNone(self.sessions.tagging)

    def test_sessions_reused_across_cycles(self):
        self.pipeline.run(self.ctx)
        self.pipeline.run(self.ctx)
        self.assertEqual(self.http.count("POST", MGMT_SESSION), 1)


if __name__ == "__main__":
    unittest.main()
