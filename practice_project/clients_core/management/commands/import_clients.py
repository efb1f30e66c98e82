import json
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from clients_core.services.csv_import import import_clients_csv, preview_clients_csv


class Command(BaseCommand):
    help = "Import clients from a CSV file, allocating a reference for each row."

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument("path", help="CSV file to import")
        parser.add_argument(
            "--preview",
            action="store_true",
            help="Show the reference each row would get without creating anything.",
        )

    def handle(self, *args, **options):
        path = Path(options["path"])
        if not path.is_file():
            raise CommandError(f"No such file: {path}")

        # utf-8-sig drops the BOM spreadsheet exports like to add
        text = path.read_text(encoding="utf-8-sig")

        if options["preview"]:
            result = preview_clients_csv(text)
            for row in result["rows"]:
                if "error" in row:
                    self.stdout.write(self.style.ERROR(f"line {row['line']}: {row['name'] or '-'}: {row['error']}"))
                else:
                    self.stdout.write(f"line {row['line']}: {row['suggested_ref']}  {row['name']}")
            self.stdout.write(self.style.NOTICE(f"{result['valid']} of {result['total']} rows valid"))
            return

        self.stdout.write(self.style.NOTICE(f"Importing clients from {path}..."))
        result = import_clients_csv(text)
        for err in result["errors"]:
            self.stdout.write(self.style.ERROR(json.dumps(err)))
        self.stdout.write(self.style.SUCCESS(f"Created {result['created']} clients, {len(result['errors'])} failed."))
