import unittest

from commit_composer.tokens.cost import DEFAULT_PRICING, estimate_cost


class TestEstimateCost(unittest.TestCase):
    def test_ollama_is_free(self):
        estimate = estimate_cost(10_000, 500, "llama3", provider="ollama")
        self.assertEqual(estimate.estimated_cost, 0.0)
        self.assertEqual(estimate.input_tokens, 10_000)
        self.assertEqual(estimate.output_tokens, 500)

    def test_known_model_price(self):
        estimate = estimate_cost(1_000_000, 1_000_000, "gpt-4o")
        self.assertAlmostEqual(estimate.estimated_cost, 12.5)

    def test_model_lookup_ignores_case(self):
        estimate = estimate_cost(1_000_000, 0, "GPT-4o-mini")
        self.assertAlmostEqual(estimate.estimated_cost, 0.15)

    def test_unknown_model_uses_default_pricing(self):
        estimate = estimate_cost(1_000_000, 1_000_000, "some-local-model")
        self.assertAlmostEqual(estimate.estimated_cost, sum(DEFAULT_PRICING))
        self.assertEqual(estimate.currency, "$")


if __name__ == "__main__":
    unittest.main()
