# Generated migration for authz app - clinic membership

import uuid
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('authz', '0001_initial'),
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ClinicMembership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('doctor', 'Doctor'), ('assistant', 'Assistant')], max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('clinic', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='core.clinic')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='clinic_memberships', to='authz.user')),
            ],
            options={
                'verbose_name': 'Clinic Membership',
                'verbose_name_plural': 'Clinic Memberships',
                'db_table': 'clinic_membership',
            },
        ),
        migrations.AddConstraint(
            model_name='clinicmembership',
            constraint=models.UniqueConstraint(fields=('clinic', 'user'), name='uniq_clinic_membership'),
        ),
        migrations.AddIndex(
            model_name='clinicmembership',
            index=models.Index(fields=['user', 'is_active'], name='idx_membership_user_active'),
        ),
    ]
