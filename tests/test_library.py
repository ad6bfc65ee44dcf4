import unittest

from support import simple_design

from idcard_studio.errors import TemplateNotFound
from idcard_studio.library.store import TemplateRecord, TemplateStore, load_seed_templates

SEED_IDS = {
    "bangladesh-heritage", "modern-professional", "academic-green", "vibrant-orange",
    "royal-purple", "minimalist-dark", "ocean-teal", "golden-elite",
}


class SeedTests(unittest.TestCase):
    def test_seed_dataset(self):
        records = load_seed_templates()
        self.assertEqual({r.id for r in records}, SEED_IDS)
        for record in records:
            self.assertEqual((record.design.dimensions.width, record.design.dimensions.height),
                             (85.6, 54))
            self.assertEqual(record.design.background.kind, "gradient")
            self.assertTrue(record.is_default)

    def test_seed_into_empty_store(self):
        store = TemplateStore()
        self.assertEqual(store.seed(), 8)
        self.assertEqual(len(store), 8)

    def test_seed_is_noop_when_populated(self):
        store = TemplateStore([TemplateRecord("custom", "Custom", simple_design())])
        self.assertEqual(store.seed(), 0)
        self.assertEqual(len(store), 1)

    def test_force_seed_replaces_existing(self):
        store = TemplateStore([TemplateRecord("custom", "Custom", simple_design())])
        self.assertEqual(store.seed(force=True), 8)
        self.assertNotIn("custom", store)
        self.assertIn("golden-elite", store)


class StoreTests(unittest.TestCase):
    def setUp(self):
        self.store = TemplateStore()
        self.store.seed()

    def test_get_unknown(self):
        with self.assertRaises(TemplateNotFound):
            self.store.get("nope")
        with self.assertRaises(LookupError):
            self.store.get("nope")

    def test_list_orders_popular_first(self):
        records = self.store.list()
        popular = [r.is_popular for r in records]
        self.assertEqual(popular, sorted(popular, reverse=True))
        self.assertEqual(records[0].id, "modern-professional")

    def test_list_by_category(self):
        self.store.add(TemplateRecord("staff-basic", "Staff", simple_design(), category="staff"))
        self.assertEqual([r.id for r in self.store.list("staff")], ["staff-basic"])
        self.assertEqual(len(self.store.list("student")), 8)

    def test_record_usage(self):
        before = self.store.get("ocean-teal").usage_count
        self.store.record_usage("ocean-teal")
        self.assertEqual(self.store.get("ocean-teal").usage_count, before + 1)

    def test_record_usage_unknown_does_not_raise(self):
        with self.assertLogs("idcard_studio.library.store", level="WARNING"):
            self.store.record_usage("ghost")

    def test_update_design(self):
        design = simple_design()
        record = self.store.update_design("royal-purple", design)
        self.assertEqual(record.design, design)
        self.assertEqual(self.store.get("royal-purple").name, "Royal Purple")

    def test_record_dict_round_trip(self):
        record = self.store.get("bangladesh-heritage")
        self.assertEqual(TemplateRecord.from_dict(record.to_dict()), record)
        self.assertEqual(record.to_dict()["usageCount"], 145)


if __name__ == "__main__":
    unittest.main()
