from unittest import mock

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from ..exceptions import ClientReferenceTaken
from ..models import AuditLog, Client, RefBucket
from ..services.clients import (create_client, delete_client, find_by_portfolio,
                                move_client_portfolio, portfolio_stats,
                                search_clients, update_client, update_client_ref)


class CreateClientTests(TestCase):

    def test_allocates_reference_and_audits(self):
        client = create_client({"name": "Nova Coin Ltd", "portfolio_code": 2})

        self.assertEqual(client.ref, "2A001")
        self.assertEqual(client.portfolio_code, 2)
        self.assertEqual(client.status, "ACTIVE")
        self.assertEqual(client.client_type, "COMPANY")
        self.assertTrue(
            AuditLog.objects.filter(action="create", object_type="Client", object_id="2A001").exists()
        )

    def test_sequential_creates_get_consecutive_refs(self):
        refs = [create_client({"name": f"Client {i}", "portfolio_code": 1}).ref for i in range(3)]
        self.assertEqual(refs, ["1A001", "1A002", "1A003"])

    def test_supplied_ref_is_stored_exactly(self):
        client = create_client({"name": "123 Homes", "portfolio_code": 3, "ref": "3H001"})

        self.assertEqual(client.ref, "3H001")
        self.assertEqual(Client.objects.get(pk="3H001").name, "123 Homes")
        # hand-assigned refs do not touch the counters
        self.assertFalse(RefBucket.objects.exists())

    def test_supplied_ref_already_taken_is_refused(self):
        create_client({"name": "First", "portfolio_code": 1, "ref": "1A005"})

        with self.assertRaises(ClientReferenceTaken):
            create_client({"name": "Second", "portfolio_code": 1, "ref": "1A005"})

        self.assertEqual(Client.objects.get(pk="1A005").name, "First")

    def test_supplied_ref_must_be_well_formed_and_in_portfolio(self):
        with self.assertRaises(ValidationError):
            create_client({"name": "Bad", "portfolio_code": 1, "ref": "XYZ"})
        with self.assertRaises(ValidationError):
            create_client({"name": "Wrong portfolio", "portfolio_code": 1, "ref": "2A001"})

    def test_portfolio_must_be_in_range(self):
        with self.assertRaises(ValidationError):
            create_client({"name": "Too high", "portfolio_code": 11})
        with self.assertRaises(ValidationError):
            create_client({"name": "Zero", "portfolio_code": 0})
        with self.assertRaises(ValidationError):
            create_client({"name": "Text", "portfolio_code": "abc"})

    def test_missing_portfolio_defaults_to_one(self):
        self.assertEqual(create_client({"name": "Default"}).ref, "1A001")

    def test_name_is_required(self):
        with self.assertRaises(ValidationError):
            create_client({"name": "  ", "portfolio_code": 1})

    def test_allocator_skips_hand_assigned_refs(self):
        create_client({"name": "Manual", "portfolio_code": 1, "ref": "1A002"})

        first = create_client({"name": "Auto 1", "portfolio_code": 1})
        second = create_client({"name": "Auto 2", "portfolio_code": 1})

        self.assertEqual((first.ref, second.ref), ("1A001", "1A003"))

    def test_insert_race_retries_with_fresh_allocation(self):
        # another request inserted 1A001 after our allocator probed it
        Client.objects.create(ref="1A001", name="Winner", portfolio_code=1)

        with mock.patch(
            "clients_core.services.clients.allocate_client_identifier",
            side_effect=["1A001", "1A002"],
        ) as allocate:
            client = create_client({"name": "Loser", "portfolio_code": 1})

        self.assertEqual(allocate.call_count, 2)
        self.assertEqual(client.ref, "1A002")
        self.assertEqual(Client.objects.get(pk="1A001").name, "Winner")

    def test_insert_race_gives_up_after_retries(self):
        Client.objects.create(ref="1A001", name="Winner", portfolio_code=1)

        with mock.patch(
            "clients_core.services.clients.allocate_client_identifier",
            return_value="1A001",
        ) as allocate:
            with self.assertRaises(IntegrityError):
                create_client({"name": "Loser", "portfolio_code": 1})

        self.assertEqual(allocate.call_count, 3)


class ClientUpdateTests(TestCase):

    def setUp(self):
        self.client_row = create_client(
            {"name": "Acme Ltd", "portfolio_code": 1, "main_email": "info@acme.test"}
        )

    def test_update_changes_fields_but_not_ref_or_portfolio(self):
        updated = update_client(
            self.client_row.ref,
            {"name": "Acme Holdings Ltd", "ref": "1Z999", "portfolio_code": 4, "city": "Leeds"},
        )

        self.assertEqual(updated.ref, "1A001")
        self.assertEqual(updated.portfolio_code, 1)
        self.assertEqual(updated.name, "Acme Holdings Ltd")
        self.assertEqual(updated.city, "Leeds")
        log = AuditLog.objects.get(action="update", object_id="1A001")
        self.assertEqual(log.changes["name"], ["Acme Ltd", "Acme Holdings Ltd"])

    def test_update_rejects_invalid_values(self):
        with self.assertRaises(ValidationError):
            update_client(self.client_row.ref, {"main_email": "not-an-email"})

    def test_update_ref_moves_client(self):
        moved = update_client_ref("1A001", "1M010")

        self.assertEqual(moved.ref, "1M010")
        self.assertEqual(moved.name, "Acme Ltd")
        self.assertFalse(Client.objects.filter(pk="1A001").exists())
        self.assertTrue(AuditLog.objects.filter(action="ref_change", object_id="1M010").exists())

    def test_update_ref_to_same_value_is_noop(self):
        self.assertEqual(update_client_ref("1A001", "1A001").ref, "1A001")
        self.assertFalse(AuditLog.objects.filter(action="ref_change").exists())

    def test_update_ref_rules(self):
        create_client({"name": "Other", "portfolio_code": 1, "ref": "1B001"})

        with self.assertRaises(ValidationError):
            update_client_ref("1A001", "bad")
        with self.assertRaises(ValidationError):
            update_client_ref("1A001", "2A001")
        with self.assertRaises(ClientReferenceTaken):
            update_client_ref("1A001", "1B001")

        self.assertTrue(Client.objects.filter(pk="1A001").exists())

    def test_update_ref_of_missing_client(self):
        with self.assertRaises(Client.DoesNotExist):
            update_client_ref("9Z999", "9Z998")

    def test_delete_keeps_bucket_counter(self):
        delete_client("1A001")

        self.assertFalse(Client.objects.filter(pk="1A001").exists())
        self.assertTrue(AuditLog.objects.filter(action="delete", object_id="1A001").exists())
        self.assertEqual(RefBucket.objects.get(portfolio_code=1, alpha="A").next_index, 2)
        # the freed number is not handed out again automatically
        self.assertEqual(create_client({"name": "Next", "portfolio_code": 1}).ref, "1A002")


class ClientLookupTests(TestCase):

    def setUp(self):
        create_client({"name": "Nova Coin", "portfolio_code": 2, "registered_number": "01234567"})
        create_client({"name": "123 Homes", "portfolio_code": 3})
        create_client({"name": "Homes Direct", "portfolio_code": 2, "main_email": "hello@homes.test"})

    def test_find_by_portfolio(self):
        refs = list(find_by_portfolio(2).values_list("ref", flat=True))
        self.assertEqual(refs, ["2A001", "2A002"])

        with self.assertRaises(ValidationError):
            find_by_portfolio(42)

    def test_search_matches_name_ref_email_and_number(self):
        self.assertEqual(
            list(search_clients("homes").values_list("ref", flat=True)), ["2A002", "3A001"]
        )
        self.assertEqual(list(search_clients("homes", portfolio_code=3).values_list("ref", flat=True)), ["3A001"])
        self.assertEqual(list(search_clients("0123").values_list("ref", flat=True)), ["2A001"])
        self.assertEqual(list(search_clients("2a002").values_list("ref", flat=True)), ["2A002"])


class PortfolioMoveTests(TestCase):

    def setUp(self):
        self.client_row = create_client({"name": "Acme Ltd", "portfolio_code": 1})

    def test_move_allocates_ref_in_new_portfolio(self):
        moved = move_client_portfolio("1A001", 3)

        self.assertEqual((moved.ref, moved.portfolio_code), ("3A001", 3))
        self.assertEqual(moved.name, "Acme Ltd")
        self.assertFalse(Client.objects.filter(pk="1A001").exists())
        self.assertEqual(RefBucket.objects.get(portfolio_code=3, alpha="A").next_index, 2)

        log = AuditLog.objects.get(action="ref_change", object_id="3A001")
        self.assertEqual(log.changes["ref"], ["1A001", "3A001"])
        self.assertEqual(log.changes["portfolio_code"], [1, 3])

    def test_move_to_same_portfolio_is_noop(self):
        self.assertEqual(move_client_portfolio("1A001", 1).ref, "1A001")
        self.assertFalse(AuditLog.objects.filter(action="ref_change").exists())

    def test_move_validates_target_portfolio(self):
        for bad in (None, "", 0, 11, "abc"):
            with self.assertRaises(ValidationError):
                move_client_portfolio("1A001", bad)

        self.assertTrue(Client.objects.filter(pk="1A001").exists())

    def test_move_skips_taken_refs_in_target(self):
        create_client({"name": "Manual", "portfolio_code": 2, "ref": "2A001"})

        self.assertEqual(move_client_portfolio("1A001", 2).ref, "2A002")

    def test_move_retries_when_allocated_ref_is_taken(self):
        Client.objects.create(ref="2A001", name="Winner", portfolio_code=2)

        with mock.patch(
            "clients_core.services.clients.allocate_client_identifier",
            side_effect=["2A001", "2A002"],
        ) as allocate:
            moved = move_client_portfolio("1A001", 2)

        self.assertEqual(allocate.call_count, 2)
        self.assertEqual(moved.ref, "2A002")
        self.assertEqual(Client.objects.get(pk="2A001").name, "Winner")

    def test_move_gives_up_after_retries(self):
        Client.objects.create(ref="2A001", name="Winner", portfolio_code=2)

        with mock.patch(
            "clients_core.services.clients.allocate_client_identifier",
            return_value="2A001",
        ) as allocate:
            with self.assertRaises(IntegrityError):
                move_client_portfolio("1A001", 2)

        self.assertEqual(allocate.call_count, 3)
        self.assertTrue(Client.objects.filter(pk="1A001").exists())


class PortfolioStatsTests(TestCase):

    def test_counts_active_and_inactive_per_portfolio(self):
        create_client({"name": "A", "portfolio_code": 2})
        create_client({"name": "B", "portfolio_code": 2, "status": "INACTIVE"})
        create_client({"name": "C", "portfolio_code": 2, "status": "ARCHIVED"})
        create_client({"name": "D", "portfolio_code": 5})

        stats = portfolio_stats()

        self.assertEqual(sorted(stats), list(range(1, 11)))
        self.assertEqual(stats[2], {"count": 3, "active": 1, "inactive": 2})
        self.assertEqual(stats[5], {"count": 1, "active": 1, "inactive": 0})
        self.assertEqual(stats[1], {"count": 0, "active": 0, "inactive": 0})


class ReferenceInputTests(TestCase):

    def test_non_string_refs_are_rejected(self):
        with self.assertRaises(ValidationError):
            create_client({"name": "X", "portfolio_code": 1, "ref": 123})
        self.assertFalse(Client.objects.exists())

        create_client({"name": "Acme", "portfolio_code": 1})
        with self.assertRaises(ValidationError):
            update_client_ref("1A001", 1002)

    def test_non_mapping_data_is_rejected(self):
        with self.assertRaises(ValidationError):
            create_client([1])
