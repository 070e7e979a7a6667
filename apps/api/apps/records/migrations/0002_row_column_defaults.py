# Generated migration for records app - defaults for columns a device may omit

from django.db import migrations, models


GENDER_CHOICES = [('male', 'Male'), ('female', 'Female'), ('other', 'Other')]


class Migration(migrations.Migration):

    dependencies = [
        ('records', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='patient',
            name='age',
            field=models.PositiveIntegerField(default=0),
        ),
        migrations.AlterField(
            model_name='prescription',
            name='patient_id',
            field=models.CharField(blank=True, default='', max_length=64),
        ),
        migrations.AlterField(
            model_name='prescription',
            name='patient_name',
            field=models.CharField(blank=True, default='', max_length=255),
        ),
        migrations.AlterField(
            model_name='prescription',
            name='patient_age',
            field=models.PositiveIntegerField(default=0),
        ),
        migrations.AlterField(
            model_name='prescription',
            name='patient_gender',
            field=models.CharField(choices=GENDER_CHOICES, default='male', max_length=10),
        ),
        migrations.AlterField(
            model_name='prescription',
            name='doctor_id',
            field=models.CharField(blank=True, default='', max_length=64),
        ),
        migrations.AlterField(
            model_name='prescriptionmedicine',
            name='prescription_id',
            field=models.CharField(blank=True, default='', max_length=64),
        ),
        migrations.AlterField(
            model_name='prescriptionlabtest',
            name='prescription_id',
            field=models.CharField(blank=True, default='', max_length=64),
        ),
        migrations.AlterField(
            model_name='queueentry',
            name='patient_id',
            field=models.CharField(blank=True, default='', max_length=64),
        ),
        migrations.AlterField(
            model_name='queueentry',
            name='added_by',
            field=models.CharField(blank=True, default='', max_length=64),
        ),
        migrations.AlterField(
            model_name='queueentry',
            name='token_number',
            field=models.PositiveIntegerField(default=0),
        ),
    ]
