import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("accounts", "0001_initial"),
        ("reports", "0002_company_external_assignee"),
    ]

    operations = [
        migrations.AddField(
            model_name="user",
            name="company",
            field=models.ForeignKey(
                blank=True,
                help_text="Employer of an external maintainer.",
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="maintainers",
                to="reports.company",
                verbose_name="Company",
            ),
        ),
    ]
