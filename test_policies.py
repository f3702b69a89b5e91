import os
import tempfile
import unittest

from config import load_policy_overrides
from graduation.errors import ConfigurationError
from graduation.policies import (
    AGGRESSIVE_POLICY,
    CONSERVATIVE_POLICY,
    DEFAULT_POLICY,
    build_policies,
    get_policy,
)


class TestPolicies(unittest.TestCase):

    def test_presets(self):
        self.assertEqual(DEFAULT_POLICY.min_liquidity, 8000)
        self.assertEqual(DEFAULT_POLICY.max_age_minutes, 60)
        self.assertEqual(AGGRESSIVE_POLICY.min_volume_5m, 500)
        self.assertEqual(AGGRESSIVE_POLICY.max_age_minutes, 20)
        self.assertEqual(CONSERVATIVE_POLICY.min_holders, 150)
        self.assertEqual(CONSERVATIVE_POLICY.min_buy_sell_ratio, 0.8)

    def test_get_policy_case_insensitive(self):
        self.assertIs(get_policy("Aggressive"), AGGRESSIVE_POLICY)
        with self.assertRaises(ConfigurationError):
            get_policy("yolo")

    def test_override_existing_keeps_other_fields(self):
        policies = build_policies({'default': {'min_liquidity': 12000}})

        self.assertEqual(policies['default'].min_liquidity, 12000)
        self.assertEqual(policies['default'].min_volume_5m, 200)
        # presets are not mutated
        self.assertEqual(DEFAULT_POLICY.min_liquidity, 8000)

    def test_new_policy(self):
        policies = build_policies({'Sniper': {
            'min_liquidity': 10000, 'min_volume_5m': 1000,
            'min_holders': 75, 'max_age_minutes': 15,
        }})

        sniper = get_policy("sniper", policies)
        self.assertEqual(sniper.name, 'sniper')
        self.assertEqual(sniper.min_liquidity_ratio, 8.0)

    def test_invalid_overrides(self):
        with self.assertRaises(ConfigurationError):
            build_policies({'default': {'min_liqudity': 1}})
        with self.assertRaises(ConfigurationError):
            build_policies({'half': {'min_liquidity': 1}})

    def test_yaml_overrides(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, 'policies.yaml')
            with open(path, 'w') as f:
                f.write("policies:\n  conservative:\n    min_holders: 300\n")

            policies = build_policies(load_policy_overrides(path))
            self.assertEqual(policies['conservative'].min_holders, 300)

            self.assertEqual(load_policy_overrides(os.path.join(tmp, 'missing.yaml')), {})


if __name__ == '__main__':
    unittest.main()
