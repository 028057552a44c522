from __future__ import annotations

from django.core.management.base import BaseCommand

from maillage import services


class Command(BaseCommand):
    help = 'Check stored external links that are due for verification.'

    def add_arguments(self, parser) -> None:
        parser.add_argument('--limit', type=int, default=None, help='Check at most this many links.')
        parser.add_argument('--all', action='store_true', dest='check_all', help='Ignore the re-check interval.')

    def handle(self, *args, **options) -> None:
        report = services.verify_external_links(limit=options['limit'], check_all=options['check_all'])
        self.stdout.write(f'Checked {report.checked} links: {report.valid} valid, {report.invalid} invalid.')
        if report.alerted_sources:
            self.stdout.write(self.style.WARNING(f"Alerts raised for: {', '.join(report.alerted_sources)}"))
        else:
            self.stdout.write(self.style.SUCCESS('No broken-link alerts.'))

        stats = services.external_link_stats()
        summary = stats['summary']
        self.stdout.write(
            f"Stored links: {summary['total_links']} total, {summary['broken']} broken "
            f"({summary['broken_percentage']}%), {summary['never_verified']} never verified."
        )
        for heading, key in (('By source type', 'by_source_type'), ('By domain', 'by_domain')):
            if not stats[key]:
                continue
            self.stdout.write(f'{heading}:')
            for name, row in stats[key].items():
                self.stdout.write(f"  {name}: {row['broken']}/{row['total']} broken ({row['broken_percentage']}%)")
