"""
Management command to audit lot ``used`` counters.

Usage:
    python manage.py audit_lot_counters
    python manage.py audit_lot_counters --fix
"""

from django.core.management.base import BaseCommand

from baleman import warehouse


class Command(BaseCommand):
    """Compare lot counters with their live bales."""

    help = 'Audit lot used counters against live bales'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Rewrite mismatching counters from the bales table'
        )

    def handle(self, *args, **options):
        mismatches = warehouse.audit_lot_counters(fix=options['fix'])

        for lot, recorded, actual in mismatches:
            self.stdout.write(f'{lot}: used={recorded} live={actual}')

        if not mismatches:
            self.stdout.write(self.style.SUCCESS('All lot counters match'))
        elif options['fix']:
            self.stdout.write(self.style.SUCCESS(f'{len(mismatches)} lot counter(s) fixed'))
        else:
            self.stdout.write(self.style.WARNING(f'{len(mismatches)} lot counter(s) out of sync'))
