"""
Tests for the management command and admin registration.
"""

from io import StringIO

import pytest
from django.contrib import admin
from django.core.management import call_command

from baleman.models import Bale, Checklist, LabResult, Lot, ModificationRequest, Shipment


pytestmark = pytest.mark.django_db


class TestAuditLotCountersCommand:

    def test_all_match(self, make_bale):
        make_bale()
        out = StringIO()

        call_command('audit_lot_counters', stdout=out)

        assert 'All lot counters match' in out.getvalue()

    def test_reports_without_fixing(self, lot, make_bale):
        make_bale()
        Lot.objects.filter(pk=lot.pk).update(used=3)
        out = StringIO()

        call_command('audit_lot_counters', stdout=out)

        lot.refresh_from_db()
        assert 'used=3 live=1' in out.getvalue()
        assert lot.used == 3

    def test_fix(self, lot, make_bale):
        make_bale()
        Lot.objects.filter(pk=lot.pk).update(used=3)
        out = StringIO()

        call_command('audit_lot_counters', '--fix', stdout=out)

        lot.refresh_from_db()
        assert '1 lot counter(s) fixed' in out.getvalue()
        assert lot.used == 1


class TestAdmin:

    @pytest.mark.parametrize('model', [Lot, Bale, LabResult, Checklist, ModificationRequest, Shipment])
    def test_registered_read_only(self, model, rf):
        model_admin = admin.site._registry[model]
        request = rf.get('/')

        assert not model_admin.has_add_permission(request)
        assert not model_admin.has_delete_permission(request)

    def test_change_view_renders(self, admin_client, locked_checklist):
        response = admin_client.get(f'/admin/baleman/checklist/{locked_checklist.pk}/change/')

        assert response.status_code == 200
        assert locked_checklist.items.first().qr_code in response.content.decode()
