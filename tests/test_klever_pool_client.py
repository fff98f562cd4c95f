import base64
import unittest
from unittest.mock import MagicMock

import requests

from dex_prices.errors import PoolQueryError
from dex_prices.integrations.klever_rest import (
    KleverPoolClient,
    decode_base64_int,
    decode_base64_str,
    encode_pair_id,
)


def b64_str(value: str) -> str:
    return base64.b64encode(value.encode()).decode()


def b64_int(value: int) -> str:
    if value == 0:
        return ""
    return base64.b64encode(value.to_bytes((value.bit_length() + 7) // 8, "big")).decode()


def pair_response(token_a: str, token_b: str, reserve_a: int, reserve_b: int, active: int = 1) -> MagicMock:
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = {
        "code": "successful",
        "data": {
            "returnCode": "Ok",
            "returnData": [
                b64_str(token_a),
                b64_str(token_b),
                "",
                "",
                b64_int(reserve_a),
                b64_int(reserve_b),
                "",
                b64_int(active),
            ],
        },
    }
    return response


class CodecTest(unittest.TestCase):
    def test_encode_pair_id(self):
        self.assertEqual(encode_pair_id(0), [0])
        self.assertEqual(encode_pair_id(7), [7])
        self.assertEqual(encode_pair_id(256), [1, 0])
        self.assertEqual(encode_pair_id(0x01F4), [1, 244])

    def test_decode_helpers(self):
        self.assertEqual(decode_base64_int(b64_int(1_000_000)), 1_000_000)
        self.assertEqual(decode_base64_int(""), 0)
        self.assertEqual(decode_base64_int("!!not-base64!!"), 0)
        self.assertEqual(decode_base64_str(b64_str("DGKO-CXVJ")), "DGKO-CXVJ")
        self.assertEqual(decode_base64_str(None), "")


class KleverPoolClientTest(unittest.TestCase):
    def test_query_pair_uses_contract_query_and_scales_reserves(self):
        session = MagicMock()
        session.post.return_value = pair_response("KLV", "DGKO-CXVJ", 2_000_000, 30_000)

        client = KleverPoolClient(
            dex_contract="klv1contract",
            base_url="https://node.test/",
            session=session,
        )

        pool = client.query_pair(3)

        session.post.assert_called_once_with(
            "https://node.test/v1.0/sc/query",
            headers={"content-type": "application/json"},
            json={
                "scAddress": "klv1contract",
                "funcName": "getPairInfo",
                "arguments": [[3]],
            },
            timeout=5,
        )
        self.assertEqual(pool.id, 3)
        self.assertEqual(pool.token_b, "DGKO-CXVJ")
        self.assertEqual(pool.reserve_a, 2.0)
        self.assertEqual(pool.reserve_b, 3.0)
        self.assertTrue(pool.is_active)

    def test_inactive_flag_decoded(self):
        session = MagicMock()
        session.post.return_value = pair_response("KLV", "KID-AB12", 1, 1, active=0)
        client = KleverPoolClient(dex_contract="c", session=session)

        self.assertFalse(client.query_pair(1).is_active)

    def test_failed_query_raises_pool_query_error(self):
        session = MagicMock()
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = {"code": "internal_issue", "data": {}}
        session.post.return_value = response
        client = KleverPoolClient(dex_contract="c", session=session)

        with self.assertRaises(PoolQueryError) as ctx:
            client.query_pair(9)
        self.assertEqual(ctx.exception.pair_id, 9)

    def test_short_return_data_raises(self):
        session = MagicMock()
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.return_value = {
            "code": "successful",
            "data": {"returnCode": "Ok", "returnData": [b64_str("KLV")]},
        }
        session.post.return_value = response
        client = KleverPoolClient(dex_contract="c", session=session)

        with self.assertRaises(PoolQueryError):
            client.query_pair(1)

    def test_http_error_raises_pool_query_error(self):
        session = MagicMock()
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("500")
        session.post.return_value = response
        client = KleverPoolClient(dex_contract="c", session=session)

        with self.assertRaises(PoolQueryError):
            client.query_pair(1)

    def test_snapshot_omits_failing_pairs(self):
        session = MagicMock()
        failing = MagicMock()
        failing.raise_for_status.side_effect = requests.ConnectionError("reset")
        session.post.side_effect = [
            pair_response("KLV", "DGKO-CXVJ", 10, 10),
            failing,
            pair_response("DGKO-CXVJ", "KID-AB12", 10, 10),
        ]
        client = KleverPoolClient(dex_contract="c", session=session, max_pairs=3)

        pools = client.get_pool_snapshot()

        self.assertEqual([p.id for p in pools], [1, 3])
        self.assertEqual(list(client.last_errors), [2])


if __name__ == "__main__":
    unittest.main()
