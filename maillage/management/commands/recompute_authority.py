from __future__ import annotations

from django.core.management.base import BaseCommand

from maillage import services


class Command(BaseCommand):
    help = 'Recompute authority scores over the internal link graph and persist them.'

    def add_arguments(self, parser) -> None:
        parser.add_argument('--top', type=int, default=10, help='Number of top items to print.')
        parser.add_argument('--bottom', type=int, default=0, help='Number of lowest-authority items to print.')

    def handle(self, *args, **options) -> None:
        result = services.recompute_authority()
        status = 'converged' if result.converged else 'did not converge'
        self.stdout.write(f'{len(result.scores)} items, {status} after {result.iterations} iterations.')

        rows = services.authority_rows()
        top = rows[: options['top']]
        bottom = rows[-options['bottom']:] if options['bottom'] else []
        for row in top:
            self.write_row(row)
        if bottom:
            self.stdout.write('Lowest authority:')
            for row in bottom:
                self.write_row(row)

        style = self.style.SUCCESS if result.converged else self.style.WARNING
        self.stdout.write(style('Authority scores saved.'))

    def write_row(self, row) -> None:
        self.stdout.write(
            f"#{row['rank']} {row['item_id']}: {row['normalized_score']} "
            f"(in={row['inbound_links']}, out={row['outbound_links']})"
        )
