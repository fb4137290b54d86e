"""
Check that the Copper ids this service writes to actually exist.
Run: python manage.py check_copper_fields
"""

from django.core.management.base import BaseCommand, CommandError

from estate.config import IntegrationConfig
from estate.copper_client import CopperClient


class Command(BaseCommand):
    help = "Verify configured Copper custom field, pipeline and stage ids"

    def handle(self, *args, **options):
        config = IntegrationConfig.from_settings()
        client = CopperClient(config)

        definitions = client.list_custom_field_definitions()
        pipelines = client.list_pipelines()
        if definitions is None or pipelines is None:
            raise CommandError("Could not read Copper account settings")

        missing = []

        known_fields = {str(d.get('id')): d.get('name') for d in definitions}
        for name, field_id in config.field_ids.items():
            if str(field_id) in known_fields:
                self.stdout.write(f"✅ {name}: {field_id} ({known_fields[str(field_id)]})")
            else:
                self.stdout.write(f"❌ {name}: {field_id} NOT FOUND")
                missing.append(name)

        pipeline = next((p for p in pipelines if str(p.get('id')) == str(config.pipeline_id)), None)
        if not pipeline:
            self.stdout.write(f"❌ pipeline: {config.pipeline_id} NOT FOUND")
            missing.append('pipeline')
        else:
            self.stdout.write(f"✅ pipeline: {config.pipeline_id} ({pipeline.get('name')})")
            stage_ids = {str(s.get('id')) for s in pipeline.get('stages') or []}
            for label, stage_id in (('quiz completed stage', config.quiz_completed_stage_id),
                                    ('paid stage', config.paid_stage_id)):
                mark = '✅' if str(stage_id) in stage_ids else '❌'
                self.stdout.write(f"{mark} {label}: {stage_id}")
                if mark == '❌':
                    missing.append(label)

        if missing:
            raise CommandError(f"Missing in Copper: {', '.join(missing)}")
