# Generated migration for records app - synced clinic collections

from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


def synced_fields():
    return [
        ('sync_pk', models.BigAutoField(primary_key=True, serialize=False)),
        ('id', models.CharField(help_text='Client- or server-assigned identifier', max_length=64)),
        ('is_deleted', models.BooleanField(default=False)),
        ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
        ('updated_at', models.DateTimeField(default=django.utils.timezone.now)),
        ('clinic', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='core.clinic')),
    ]


GENDER_CHOICES = [('male', 'Male'), ('female', 'Female'), ('other', 'Other')]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Patient',
            fields=synced_fields() + [
                ('name', models.CharField(max_length=255)),
                ('age', models.PositiveIntegerField()),
                ('gender', models.CharField(choices=GENDER_CHOICES, default='male', max_length=10)),
                ('weight', models.FloatField(blank=True, null=True)),
                ('phone', models.CharField(blank=True, default='', max_length=20)),
                ('address', models.CharField(blank=True, default='', max_length=500)),
                ('blood_group', models.CharField(blank=True, default='', max_length=10)),
                ('allergies', models.TextField(blank=True, default='')),
            ],
            options={
                'verbose_name': 'Patient',
                'verbose_name_plural': 'Patients',
                'db_table': 'sync_patients',
                'abstract': False,
                'indexes': [
                    models.Index(fields=['clinic', 'updated_at'], name='idx_patient_clinic_upd'),
                    models.Index(fields=['clinic', 'phone'], name='idx_patient_clinic_phone'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('id', 'clinic'), name='uniq_patient_id_clinic'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Prescription',
            fields=synced_fields() + [
                ('patient_id', models.CharField(max_length=64)),
                ('patient_name', models.CharField(max_length=255)),
                ('patient_age', models.PositiveIntegerField()),
                ('patient_gender', models.CharField(choices=GENDER_CHOICES, max_length=10)),
                ('patient_phone', models.CharField(blank=True, default='', max_length=20)),
                ('doctor_id', models.CharField(max_length=64)),
                ('diagnosis', models.TextField(blank=True, default='')),
                ('advice', models.TextField(blank=True, default='')),
                ('follow_up_date', models.DateField(blank=True, null=True)),
                ('pdf_hash', models.CharField(blank=True, max_length=128, null=True)),
                ('signature', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('finalized', 'Finalized')], default='draft', max_length=20)),
                ('wallet_deducted', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Prescription',
                'verbose_name_plural': 'Prescriptions',
                'db_table': 'sync_prescriptions',
                'abstract': False,
                'indexes': [
                    models.Index(fields=['clinic', 'updated_at'], name='idx_rx_clinic_upd'),
                    models.Index(fields=['clinic', 'patient_id'], name='idx_rx_clinic_patient'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('id', 'clinic'), name='uniq_prescription_id_clinic'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PrescriptionMedicine',
            fields=synced_fields() + [
                ('prescription_id', models.CharField(max_length=64)),
                ('medicine_name', models.CharField(max_length=255)),
                ('type', models.CharField(blank=True, default='', max_length=50)),
                ('dosage', models.CharField(blank=True, default='', max_length=100)),
                ('frequency', models.CharField(blank=True, default='', max_length=100)),
                ('duration', models.CharField(blank=True, default='', max_length=100)),
                ('timing', models.CharField(blank=True, default='', max_length=100)),
                ('notes', models.TextField(blank=True, default='')),
            ],
            options={
                'verbose_name': 'Prescription Medicine',
                'verbose_name_plural': 'Prescription Medicines',
                'db_table': 'sync_prescription_medicines',
                'abstract': False,
                'indexes': [
                    models.Index(fields=['clinic', 'updated_at'], name='idx_rxmed_clinic_upd'),
                    models.Index(fields=['clinic', 'prescription_id'], name='idx_rxmed_clinic_rx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('id', 'clinic'), name='uniq_prescriptionmedicine_id_clinic'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PrescriptionLabTest',
            fields=synced_fields() + [
                ('prescription_id', models.CharField(max_length=64)),
                ('test_name', models.CharField(max_length=255)),
                ('category', models.CharField(blank=True, default='', max_length=100)),
                ('notes', models.TextField(blank=True, default='')),
            ],
            options={
                'verbose_name': 'Prescription Lab Test',
                'verbose_name_plural': 'Prescription Lab Tests',
                'db_table': 'sync_prescription_lab_tests',
                'abstract': False,
                'indexes': [
                    models.Index(fields=['clinic', 'updated_at'], name='idx_rxlab_clinic_upd'),
                    models.Index(fields=['clinic', 'prescription_id'], name='idx_rxlab_clinic_rx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('id', 'clinic'), name='uniq_prescriptionlabtest_id_clinic'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QueueEntry',
            fields=synced_fields() + [
                ('patient_id', models.CharField(max_length=64)),
                ('status', models.CharField(choices=[('waiting', 'Waiting'), ('in_progress', 'In Progress'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='waiting', max_length=20)),
                ('added_by', models.CharField(max_length=64)),
                ('notes', models.TextField(blank=True, default='')),
                ('token_number', models.PositiveIntegerField()),
                ('added_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Queue Entry',
                'verbose_name_plural': 'Queue Entries',
                'db_table': 'sync_queue',
                'abstract': False,
                'indexes': [
                    models.Index(fields=['clinic', 'updated_at'], name='idx_queue_clinic_upd'),
                    models.Index(fields=['clinic', 'added_at'], name='idx_queue_clinic_added'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('id', 'clinic'), name='uniq_queueentry_id_clinic'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CustomMedicine',
            fields=synced_fields() + [
                ('name', models.CharField(max_length=255)),
                ('type', models.CharField(default='Tablet', max_length=50)),
                ('strength', models.CharField(blank=True, default='', max_length=100)),
                ('manufacturer', models.CharField(blank=True, default='', max_length=255)),
                ('usage_count', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Custom Medicine',
                'verbose_name_plural': 'Custom Medicines',
                'db_table': 'sync_custom_medicines',
                'abstract': False,
                'indexes': [
                    models.Index(fields=['clinic', 'updated_at'], name='idx_cmed_clinic_upd'),
                    models.Index(fields=['clinic', 'name'], name='idx_cmed_clinic_name'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('id', 'clinic'), name='uniq_custommedicine_id_clinic'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CustomLabTest',
            fields=synced_fields() + [
                ('name', models.CharField(max_length=255)),
                ('category', models.CharField(default='Other', max_length=100)),
                ('usage_count', models.PositiveIntegerField(default=0)),
            ],
            options={
                'verbose_name': 'Custom Lab Test',
                'verbose_name_plural': 'Custom Lab Tests',
                'db_table': 'sync_custom_lab_tests',
                'abstract': False,
                'indexes': [
                    models.Index(fields=['clinic', 'updated_at'], name='idx_clab_clinic_upd'),
                    models.Index(fields=['clinic', 'name'], name='idx_clab_clinic_name'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('id', 'clinic'), name='uniq_customlabtest_id_clinic'),
                ],
            },
        ),
    ]
