from __future__ import annotations

import json

from django.core.management.base import BaseCommand, CommandError

from maillage import services


class Command(BaseCommand):
    help = 'Generate internal links for content items, or dry-run a link balance report.'

    def add_arguments(self, parser) -> None:
        parser.add_argument('--item', action='append', dest='items', default=[], help='Content item id (repeatable).')
        parser.add_argument('--force', action='store_true', help='Replace links already generated for the item.')
        parser.add_argument('--dry-run', action='store_true', help='Print a link balance report without writing.')

    def handle(self, *args, **options) -> None:
        repository = services.get_content_repository()
        if options['items']:
            items = []
            for item_id in options['items']:
                item = repository.get(item_id)
                if item is None:
                    raise CommandError(f'Unknown content item: {item_id}')
                items.append(item)
        else:
            items = repository.list_items()

        engine = services.build_engine(repository)

        if options['dry_run']:
            report = engine.link_balance_report(items)
            self.stdout.write(json.dumps(report, indent=2, sort_keys=True))
            return

        created = 0
        for item in items:
            report = engine.generate_internal_links(item, force=options['force'])
            if report.skipped:
                self.stdout.write(f'{item.id}: skipped (already linked)')
                continue
            created += report.created
            self.stdout.write(
                f'{item.id}: {report.created} links '
                f'({report.candidates_found} candidates, {report.below_threshold} below threshold, '
                f'{report.unplaced} unplaced)'
            )
        self.stdout.write(self.style.SUCCESS(f'Created {created} internal links across {len(items)} items.'))
