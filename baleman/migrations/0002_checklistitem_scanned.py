# Generated manually: loading dock scan stamps on checklist items.

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('baleman', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='checklistitem',
            name='scanned_at',
            field=models.DateTimeField(blank=True, null=True, verbose_name='Scanned at'),
        ),
        migrations.AddField(
            model_name='checklistitem',
            name='scanned_by',
            field=models.CharField(blank=True, default='', max_length=100, verbose_name='Scanned by'),
        ),
    ]
