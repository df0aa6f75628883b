import asyncio
import random
import unittest
from unittest.mock import patch

from token_casino.errors import (
    AmbiguousTransactionError,
    InsufficientBalanceError,
    PlatformInsolvencyError,
)
from token_casino.ledger import (
    BURN_ADDRESS,
    COLLECTION_ADDRESS,
    MINT_ADDRESS,
    RESERVE_ADDRESS,
    TokenLedger,
)


class FixedClock:
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


class TestLedgerBasics(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.clock = FixedClock()
        self.ledger = TokenLedger(clock=self.clock)

    async def test_initial_allocation(self):
        info = await self.ledger.get_token_info()
        self.assertEqual(info.name, "2xBDamageToken")
        self.assertEqual(info.symbol, "2XBD")
        self.assertEqual(info.total_supply, 1_000_000)
        self.assertEqual(info.decimals, 2)
        self.assertEqual(await self.ledger.balance_of(RESERVE_ADDRESS), 900_000)
        self.assertEqual(await self.ledger.balance_of(COLLECTION_ADDRESS), 100_000)
        self.assertTrue(await self.ledger.check_conservation())

    async def test_unknown_address_has_zero_balance(self):
        self.assertEqual(await self.ledger.balance_of("nobody"), 0)
        self.assertEqual(await self.ledger.get_transaction_history("nobody"), [])

    async def test_transfer_moves_funds_and_records(self):
        await self.ledger.grant_initial_tokens("alice", 100)
        receipt = await self.ledger.transfer("alice", "bob", 40, {"note": "lunch"})

        self.assertTrue(receipt)
        tx = receipt.transaction
        self.assertEqual((tx.src, tx.dst, tx.amount), ("alice", "bob", 40))
        self.assertEqual(tx.kind, "transfer")
        self.assertEqual(tx.status, "completed")
        self.assertEqual(tx.metadata, {"note": "lunch"})
        self.assertEqual(await self.ledger.balance_of("alice"), 60)
        self.assertEqual(await self.ledger.balance_of("bob"), 40)

    async def test_failed_transfer_changes_nothing(self):
        await self.ledger.grant_initial_tokens("alice", 100)
        before = await self.ledger.get_transaction_history("alice")

        for amount in (0, -5, 101):
            receipt = await self.ledger.transfer("alice", "bob", amount)
            self.assertFalse(receipt)
            self.assertIsNone(receipt.transaction)

        self.assertEqual(await self.ledger.balance_of("alice"), 100)
        self.assertEqual(await self.ledger.balance_of("bob"), 0)
        self.assertEqual(await self.ledger.get_transaction_history("alice"), before)

    async def test_transfer_failure_kinds(self):
        zero = await self.ledger.transfer("alice", "bob", 0)
        self.assertEqual(zero.failure, "invalid_amount")
        broke = await self.ledger.transfer("alice", "bob", 10)
        self.assertEqual(broke.failure, "insufficient_funds")
        with self.assertRaises(InsufficientBalanceError):
            broke.raise_for_failure()

    async def test_grant_is_one_time(self):
        first = await self.ledger.grant_initial_tokens("alice", 100)
        second = await self.ledger.grant_initial_tokens("alice", 100)

        self.assertTrue(first)
        self.assertEqual(first.transaction.kind, "initial_grant")
        self.assertEqual(first.transaction.src, RESERVE_ADDRESS)
        self.assertEqual(first.transaction.metadata, {"reason": "new_user_grant"})
        self.assertFalse(second)
        self.assertEqual(second.failure, "already_funded")
        self.assertEqual(await self.ledger.balance_of("alice"), 100)

    async def test_grant_with_drained_reserve(self):
        ledger = TokenLedger(initial_supply=100, reserve_share=0.5)
        self.assertEqual(await ledger.balance_of(RESERVE_ADDRESS), 50)

        with self.assertLogs("token_casino.ledger.ledger", level="CRITICAL"):
            receipt = await ledger.grant_initial_tokens("alice", 100)

        self.assertEqual(receipt.failure, "platform_insolvency")
        self.assertEqual(await ledger.balance_of("alice"), 0)
        with self.assertRaises(PlatformInsolvencyError):
            receipt.raise_for_failure()

    async def test_bet_and_win_use_collection_account(self):
        await self.ledger.grant_initial_tokens("alice", 100)
        bet = await self.ledger.process_bet("alice", 30, "slots-1")
        win = await self.ledger.process_win("alice", 45, "slots-1")

        self.assertEqual(bet.transaction.kind, "bet")
        self.assertEqual(bet.transaction.dst, COLLECTION_ADDRESS)
        self.assertEqual(bet.transaction.metadata, {"game_id": "slots-1"})
        self.assertEqual(win.transaction.kind, "win")
        self.assertEqual(win.transaction.src, COLLECTION_ADDRESS)
        self.assertEqual(await self.ledger.balance_of("alice"), 115)
        self.assertEqual(await self.ledger.balance_of(COLLECTION_ADDRESS), 100_000 - 15)

    async def test_bet_without_funds_fails(self):
        receipt = await self.ledger.process_bet("alice", 1, "slots-1")
        self.assertEqual(receipt.failure, "insufficient_funds")

    async def test_win_beyond_collection_is_insolvency(self):
        ledger = TokenLedger(initial_supply=1_000, reserve_share=1.0)
        await ledger.grant_initial_tokens("alice", 100)
        await ledger.process_bet("alice", 10, "slots-1")

        with self.assertLogs("token_casino.ledger.ledger", level="CRITICAL"):
            receipt = await ledger.process_win("alice", 50, "slots-1")

        self.assertEqual(receipt.failure, "platform_insolvency")
        self.assertEqual(await ledger.balance_of("alice"), 90)
        self.assertEqual(await ledger.balance_of(COLLECTION_ADDRESS), 10)

    async def test_deposit_and_withdraw(self):
        deposit = await self.ledger.deposit("alice", 500)
        withdraw = await self.ledger.withdraw("alice", 200)
        too_much = await self.ledger.withdraw("alice", 301)

        self.assertEqual(deposit.transaction.kind, "deposit")
        self.assertEqual(withdraw.transaction.kind, "withdrawal")
        self.assertEqual(withdraw.transaction.dst, RESERVE_ADDRESS)
        self.assertEqual(too_much.failure, "insufficient_funds")
        self.assertEqual(await self.ledger.balance_of("alice"), 300)
        self.assertTrue(await self.ledger.check_conservation())

    async def test_unencodable_metadata_is_a_failed_receipt(self):
        from datetime import datetime

        bad_metadata = [{1: "a", "b": 2}, {"at": datetime(2024, 1, 1)}, {"tags": {("x", 1): 2}}]
        for metadata in bad_metadata:
            transfer = await self.ledger.transfer(RESERVE_ADDRESS, "alice", 5, metadata)
            deposit = await self.ledger.deposit("alice", 5, metadata)
            withdraw = await self.ledger.withdraw(RESERVE_ADDRESS, 5, metadata)
            for receipt in (transfer, deposit, withdraw):
                self.assertFalse(receipt)
                self.assertEqual(receipt.failure, "invalid_metadata")
                with self.assertRaises(ValueError):
                    receipt.raise_for_failure()

        self.assertEqual(await self.ledger.balance_of("alice"), 0)
        self.assertEqual(await self.ledger.balance_of(RESERVE_ADDRESS), 900_000)
        self.assertEqual(await self.ledger.get_transaction_history(RESERVE_ADDRESS), [])
        self.assertTrue(await self.ledger.check_conservation())
        self.assertTrue(await self.ledger.verify_chain())


class TestSupply(unittest.IsolatedAsyncioTestCase):
    async def test_mint_credits_reserve(self):
        ledger = TokenLedger()
        receipt = await ledger.mint(5_000)

        self.assertEqual(receipt.transaction.src, MINT_ADDRESS)
        self.assertEqual(receipt.transaction.metadata, {"reason": "token_mint"})
        self.assertEqual((await ledger.get_token_info()).total_supply, 1_005_000)
        self.assertEqual(ledger.issued_supply, 1_005_000)
        self.assertEqual(await ledger.balance_of(RESERVE_ADDRESS), 905_000)
        self.assertEqual(await ledger.balance_of(MINT_ADDRESS), 0)
        self.assertTrue(await ledger.check_conservation())

    async def test_mint_rejects_non_positive(self):
        ledger = TokenLedger()
        with self.assertRaises(ValueError):
            await ledger.mint(0)

    async def test_burn_shrinks_supply(self):
        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 100)
        receipt = await ledger.burn("alice", 30)

        self.assertEqual(receipt.transaction.kind, "fee")
        self.assertEqual(receipt.transaction.dst, BURN_ADDRESS)
        self.assertEqual(await ledger.balance_of("alice"), 70)
        self.assertEqual(await ledger.balance_of(BURN_ADDRESS), 0)
        self.assertEqual(ledger.burned_total, 30)
        self.assertEqual((await ledger.get_token_info()).total_supply, 999_970)
        self.assertTrue(await ledger.check_conservation())

    async def test_burn_more_than_balance_fails(self):
        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 100)
        receipt = await ledger.burn("alice", 101)

        self.assertEqual(receipt.failure, "insufficient_funds")
        self.assertEqual(ledger.burned_total, 0)
        self.assertEqual((await ledger.get_token_info()).total_supply, 1_000_000)

    async def test_conservation_over_random_operations(self):
        ledger = TokenLedger(initial_supply=10_000)
        rnd = random.Random(7)
        users = ["alice", "bob", "carol", "dave"]
        for user in users:
            await ledger.grant_initial_tokens(user, 100)

        for _ in range(300):
            op = rnd.choice(["transfer", "bet", "win", "mint", "burn", "deposit", "withdraw"])
            user = rnd.choice(users)
            amount = rnd.randint(-5, 150)
            if op == "transfer":
                await ledger.transfer(user, rnd.choice(users), amount)
            elif op == "bet":
                await ledger.process_bet(user, amount, "g")
            elif op == "win":
                await ledger.process_win(user, amount, "g")
            elif op == "mint" and amount > 0:
                await ledger.mint(amount)
            elif op == "burn":
                await ledger.burn(user, amount)
            elif op == "deposit":
                await ledger.deposit(user, amount)
            elif op == "withdraw":
                await ledger.withdraw(user, amount)
            self.assertTrue(await ledger.check_conservation())
            self.assertTrue(all(b >= 0 for b in ledger._balances.values()))

        self.assertTrue(await ledger.verify_chain())


class TestConcurrency(unittest.IsolatedAsyncioTestCase):
    async def test_no_double_spend(self):
        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 100)

        first, second = await asyncio.gather(
            ledger.process_bet("alice", 100, "slots-1"),
            ledger.process_bet("alice", 100, "slots-1"),
        )

        self.assertEqual(sorted([bool(first), bool(second)]), [False, True])
        failed = first if not first else second
        self.assertEqual(failed.failure, "insufficient_funds")
        self.assertEqual(await ledger.balance_of("alice"), 0)

    async def test_many_concurrent_bets(self):
        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 100)

        results = await asyncio.gather(
            *(ledger.process_bet("alice", 10, "slots-1") for _ in range(25))
        )

        self.assertEqual(sum(1 for r in results if r), 10)
        self.assertEqual(await ledger.balance_of("alice"), 0)
        bets = [tx for tx in await ledger.get_transaction_history("alice") if tx.kind == "bet"]
        self.assertEqual(len(bets), 10)
        self.assertTrue(await ledger.check_conservation())

    async def test_concurrent_transfers_conserve(self):
        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 100)
        await ledger.grant_initial_tokens("bob", 100)

        await asyncio.gather(
            *(ledger.transfer("alice", "bob", 7) for _ in range(20)),
            *(ledger.transfer("bob", "alice", 5) for _ in range(20)),
        )

        total = await ledger.balance_of("alice") + await ledger.balance_of("bob")
        self.assertEqual(total, 200)
        self.assertTrue(await ledger.check_conservation())
        self.assertTrue(await ledger.verify_chain())


class TestQueries(unittest.IsolatedAsyncioTestCase):
    async def test_history_is_newest_first(self):
        clock = FixedClock()
        ledger = TokenLedger(clock=clock)
        await ledger.grant_initial_tokens("alice", 100)
        clock.now += 10
        await ledger.process_bet("alice", 10, "g")
        await ledger.process_win("alice", 25, "g")
        await ledger.transfer("bob", "carol", 1)  # fails, not recorded

        history = await ledger.get_transaction_history("alice")
        self.assertEqual([tx.kind for tx in history], ["win", "bet", "initial_grant"])
        self.assertEqual([tx.seq for tx in history], [2, 1, 0])
        self.assertEqual(len(await ledger.get_transaction_history("alice", limit=2)), 2)

    async def test_timestamps_never_go_backwards(self):
        clock = FixedClock()
        ledger = TokenLedger(clock=clock)
        await ledger.grant_initial_tokens("alice", 100)
        clock.now -= 5_000
        receipt = await ledger.process_bet("alice", 1, "g")
        self.assertEqual(receipt.transaction.timestamp, 1_700_000_000_000)

    async def test_history_returns_copies(self):
        ledger = TokenLedger()
        await ledger.process_bet("alice", 1, "g")
        await ledger.grant_initial_tokens("alice", 100)
        await ledger.process_bet("alice", 1, "slots-1")

        history = await ledger.get_transaction_history("alice")
        history[0].metadata["game_id"] = "tampered"

        again = await ledger.get_transaction_history("alice")
        self.assertEqual(again[0].metadata["game_id"], "slots-1")
        self.assertTrue(await ledger.verify_chain())

    async def test_top_holders(self):
        ledger = TokenLedger(initial_supply=1_000, reserve_share=0.5)
        await ledger.grant_initial_tokens("zed", 100)
        await ledger.grant_initial_tokens("amy", 100)
        await ledger.grant_initial_tokens("bob", 50)

        holders = await ledger.get_top_holders(4)
        self.assertEqual(
            [(h.address, h.balance) for h in holders],
            [(COLLECTION_ADDRESS, 500), (RESERVE_ADDRESS, 250), ("amy", 100), ("zed", 100)],
        )
        self.assertEqual(await ledger.get_top_holders(0), [])

    async def test_wallet_summary(self):
        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 1000)
        await ledger.process_win("alice", 250, "slots-game-1")
        await ledger.process_bet("alice", 50, "blackjack-game-1")
        await ledger.process_win("alice", 125, "roulette-game-1")
        await ledger.process_bet("alice", 75, "slots-game-2")

        summary = await ledger.get_wallet_summary("alice")
        self.assertEqual(summary.total_won, 375)
        self.assertEqual(summary.total_bet, 125)
        self.assertEqual(summary.net_profit, 250)
        self.assertEqual(summary.balance, 1250)

    async def test_get_transaction_by_id_hash_and_prefix(self):
        ledger = TokenLedger()
        tx = (await ledger.grant_initial_tokens("alice", 100)).transaction

        self.assertEqual((await ledger.get_transaction(tx.id)).tx, tx.tx)
        self.assertEqual((await ledger.get_transaction(tx.tx)).id, tx.id)
        self.assertEqual((await ledger.get_transaction(tx.tx[:12])).id, tx.id)
        self.assertIsNone(await ledger.get_transaction(tx.tx[:5]))
        self.assertIsNone(await ledger.get_transaction("f" * 128))
        self.assertEqual(len(tx.tx), 128)

    async def test_ambiguous_prefix(self):
        ledger = TokenLedger()
        with patch(
            "token_casino.ledger.ledger.chain_link",
            side_effect=lambda prev, body: "abcdef" + body["id"],
        ):
            await ledger.grant_initial_tokens("alice", 100)
            await ledger.grant_initial_tokens("bob", 100)

        with self.assertRaises(AmbiguousTransactionError):
            await ledger.get_transaction("abcdef")


class TestChain(unittest.IsolatedAsyncioTestCase):
    async def test_chain_links_each_transaction(self):
        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 100)
        await ledger.process_bet("alice", 10, "g")
        await ledger.burn("alice", 5)
        await ledger.mint(10)

        self.assertTrue(await ledger.verify_chain())
        hashes = [tx.tx for tx in ledger._log]
        self.assertEqual(len(set(hashes)), 4)

    async def test_tampering_breaks_chain(self):
        from dataclasses import replace

        ledger = TokenLedger()
        await ledger.grant_initial_tokens("alice", 100)
        await ledger.process_bet("alice", 10, "g")
        ledger._log[0] = replace(ledger._log[0], amount=1_000)

        with self.assertLogs("token_casino.ledger.ledger", level="ERROR"):
            self.assertFalse(await ledger.verify_chain())


if __name__ == "__main__":
    unittest.main()
