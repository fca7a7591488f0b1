from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("webhooks", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="webhookcall",
            name="raw_body_base64",
            field=models.TextField(blank=True, help_text="Set instead of raw_body when the body is not UTF-8."),
        ),
    ]
