import unittest

from retell_bridge.caller_auth import is_allowed_caller, normalize_phone


class TestNormalizePhone(unittest.TestCase):
    def test_strips_formatting(self):
        self.assertEqual(normalize_phone("+1 (555) 123-4567"), "+15551234567")

    def test_ten_digits_get_country_code(self):
        self.assertEqual(normalize_phone("555-123-4567"), "+15551234567")

    def test_eleven_digits_starting_with_one(self):
        self.assertEqual(normalize_phone("1 555 123 4567"), "+15551234567")

    def test_other_lengths_unchanged(self):
        self.assertEqual(normalize_phone("12345"), "12345")
        self.assertEqual(normalize_phone("25551234567"), "25551234567")
        self.assertEqual(normalize_phone("+447911123456"), "+447911123456")

    def test_empty(self):
        self.assertEqual(normalize_phone(""), "")
        self.assertEqual(normalize_phone(None), "")

    def test_idempotent(self):
        for raw in ["(555) 123-4567", "15551234567", "+44 7911 123456", "12345", ""]:
            once = normalize_phone(raw)
            self.assertEqual(normalize_phone(once), once)


class TestIsAllowedCaller(unittest.TestCase):
    def test_empty_allowlist_admits_everyone(self):
        self.assertTrue(is_allowed_caller("+15550000000", []))
        self.assertTrue(is_allowed_caller(None, []))

    def test_matches_after_normalization(self):
        self.assertTrue(is_allowed_caller("(555) 123-4567", ["+1 555 123 4567"]))
        self.assertTrue(is_allowed_caller("+15551234567", ["5551234567"]))

    def test_not_in_list(self):
        self.assertFalse(is_allowed_caller("+15559999999", ["+15551234567"]))

    def test_no_prefix_matching(self):
        self.assertFalse(is_allowed_caller("+1555123456", ["+15551234567"]))
        self.assertFalse(is_allowed_caller("+155512345678", ["+15551234567"]))

    def test_missing_number_is_denied(self):
        self.assertFalse(is_allowed_caller(None, ["+15551234567"]))
        self.assertFalse(is_allowed_caller("", ["+15551234567"]))


if __name__ == "__main__":
    unittest.main()
