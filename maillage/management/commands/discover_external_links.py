from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from maillage import services


class Command(BaseCommand):
    help = 'Discover authoritative external sources for a theme and country, or attach them to an item.'

    def add_arguments(self, parser) -> None:
        parser.add_argument('--theme', help='Theme code, e.g. visa.')
        parser.add_argument('--country', default=None, help='ISO country code, e.g. DE.')
        parser.add_argument('--language', default='en')
        parser.add_argument('--item', default=None, help='Attach external links to this content item.')

    def handle(self, *args, **options) -> None:
        if options['item']:
            item = services.get_content_repository().get(options['item'])
            if item is None:
                raise CommandError(f"Unknown content item: {options['item']}")
            links = services.attach_external_links(item)
            for link in links:
                self.stdout.write(f'{link.source_type.value:<13} {link.url} rel="{link.rel}"')
            self.stdout.write(self.style.SUCCESS(f'Attached {len(links)} external links to {item.id}.'))
            return

        if not options['theme']:
            raise CommandError('--theme is required unless --item is given.')
        request = (options['theme'], options['country'], options['language'])
        sources = services.discover_sources([request]).get(request, [])
        for source in sources:
            self.stdout.write(f'{source.source_type.value:<13} {source.authority_score:>3} {source.url}')
        self.stdout.write(self.style.SUCCESS(f'{len(sources)} sources cached.'))
