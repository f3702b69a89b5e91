import unittest
from unittest.mock import AsyncMock

from graduation.errors import ConfigurationError, EnrichmentError, UpstreamError
from graduation.helius import HOLDER_PAGE_SIZE, HeliusAPI
from pair_fixtures import MINT_A, MINT_B

SUPPLY = 1_000_000


def rpc_result(result):
    return {'jsonrpc': '2.0', 'id': 'x', 'result': result}


def das_page(owners):
    # DAS `total` is the size of the returned page
    return rpc_result({
        'total': len(owners),
        'limit': HOLDER_PAGE_SIZE,
        'token_accounts': [{'address': f"acct-{o}", 'owner': o, 'amount': 5} for o in owners],
    })


def largest_accounts(amounts):
    return rpc_result({'value': [
        {'address': f"acct{i}", 'amount': str(amount), 'decimals': 6}
        for i, amount in enumerate(amounts)
    ]})


def supply(amount=SUPPLY):
    return rpc_result({'value': {'amount': str(amount), 'decimals': 6}})


class TestHeliusAPI(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.api = HeliusAPI("test-key", {'rpc_url': "https://rpc.test", 'max_holder_pages': 3})
        self.responses = {}
        self.pages = []

        def router(method, url, params=None, json=None):
            rpc_method = json['method']
            if rpc_method == 'getTokenAccounts':
                page = json['params']['page']
                return self.pages[page - 1] if page <= len(self.pages) else das_page([])
            response = self.responses[rpc_method]
            if isinstance(response, Exception):
                raise response
            return response

        self.api._request_json = AsyncMock(side_effect=router)

    def rpc_calls(self, method):
        return [c for c in self.api._request_json.await_args_list if c.kwargs['json']['method'] == method]

    async def test_missing_key_fails_without_network(self):
        api = HeliusAPI("")
        api._request_json = AsyncMock()

        result = await api.fetch_holder_count(MINT_A)

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, ConfigurationError)
        api._request_json.assert_not_awaited()

    async def test_invalid_mint_fails_without_network(self):
        result = await self.api.fetch_holder_count("not-a-mint!")

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, EnrichmentError)
        self.assertEqual(result.value_or(0), 0)
        self.api._request_json.assert_not_awaited()

    async def test_holder_count_walks_pages(self):
        self.pages = [
            das_page([f"owner{i}" for i in range(HOLDER_PAGE_SIZE)]),
            das_page([f"owner{i}" for i in range(HOLDER_PAGE_SIZE, HOLDER_PAGE_SIZE + 250)]),
        ]

        result = await self.api.fetch_holder_count(MINT_A)

        self.assertEqual(result.value, HOLDER_PAGE_SIZE + 250)
        calls = self.rpc_calls('getTokenAccounts')
        self.assertEqual([c.kwargs['json']['params']['page'] for c in calls], [1, 2])
        self.assertEqual(calls[0].kwargs['params'], {'api-key': "test-key"})
        self.assertEqual(calls[0].kwargs['json']['params']['mint'], MINT_A)
        self.assertFalse(calls[0].kwargs['json']['params']['showZeroBalance'])

    async def test_holder_count_ignores_page_total(self):
        # one short page: `total` equals the page size, not the holder count
        self.pages = [das_page(["a", "b", "c"])]

        self.assertEqual((await self.api.fetch_holder_count(MINT_A)).value, 3)

    async def test_holder_count_counts_owners_once(self):
        self.pages = [das_page(["a", "a", "b"])]

        self.assertEqual((await self.api.fetch_holder_count(MINT_A)).value, 2)

    async def test_holder_count_capped_and_cached(self):
        full = das_page([f"owner{i}" for i in range(HOLDER_PAGE_SIZE)])
        self.pages = [full, full, full, full]

        first = await self.api.fetch_holder_count(MINT_A)
        second = await self.api.fetch_holder_count(MINT_A)

        self.assertEqual(first.value, HOLDER_PAGE_SIZE)
        self.assertEqual(second.value, HOLDER_PAGE_SIZE)
        self.assertEqual(len(self.rpc_calls('getTokenAccounts')), 3)

    async def test_concentration_is_share_of_supply(self):
        # ten accounts of 1% each -> top 10 hold 10%
        self.responses['getTokenSupply'] = supply()
        self.responses['getTokenLargestAccounts'] = largest_accounts([10_000] * 20)

        concentration = await self.api.fetch_top_holder_concentration(MINT_B)

        self.assertAlmostEqual(concentration.value, 10.0)

    async def test_top_holders_sorted_and_limited(self):
        self.responses['getTokenSupply'] = supply()
        self.responses['getTokenLargestAccounts'] = largest_accounts([100_000, 300_000, 50_000])

        holders = await self.api.fetch_top_holders(MINT_B, top_n=2)

        self.assertEqual([h['address'] for h in holders.value], ["acct1", "acct0"])
        self.assertEqual([h['percentage'] for h in holders.value], [30.0, 10.0])

    async def test_unknown_supply_fails(self):
        self.responses['getTokenLargestAccounts'] = largest_accounts([10_000])

        self.responses['getTokenSupply'] = supply(0)
        result = await self.api.fetch_top_holder_concentration(MINT_A)
        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, EnrichmentError)

        self.responses['getTokenSupply'] = UpstreamError("HELIUS", "timeout")
        self.assertFalse((await self.api.fetch_top_holder_concentration(MINT_B)).ok)
        self.assertEqual(self.rpc_calls('getTokenLargestAccounts'), [])

    async def test_rpc_error_becomes_failed_result(self):
        self.api._request_json = AsyncMock(
            return_value={'jsonrpc': '2.0', 'error': {'code': -32602, 'message': 'bad mint'}}
        )

        result = await self.api.fetch_holder_count(MINT_A)

        self.assertFalse(result.ok)
        self.assertIsInstance(result.error, UpstreamError)
        self.assertIn("RPC error", str(result.error))

    async def test_transport_error_is_not_cached(self):
        self.api._request_json = AsyncMock(side_effect=[
            UpstreamError("HELIUS", "timeout"),
            das_page(["a", "b", "c", "d", "e", "f", "g"]),
        ])

        self.assertFalse((await self.api.fetch_holder_count(MINT_A)).ok)
        self.assertEqual((await self.api.fetch_holder_count(MINT_A)).value, 7)

    async def test_token_metadata(self):
        self.api._request_json = AsyncMock(return_value=[{'account': MINT_A, 'onChainMetadata': {}}])

        result = await self.api.fetch_token_metadata(MINT_A)

        self.assertEqual(result.value['account'], MINT_A)
        self.assertEqual(self.api._request_json.await_args.kwargs['json'], {'mintAccounts': [MINT_A]})

        self.api._request_json = AsyncMock(return_value=[])
        self.assertFalse((await self.api.fetch_token_metadata(MINT_B)).ok)


if __name__ == '__main__':
    unittest.main()
