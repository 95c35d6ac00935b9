# Initial migration for GiftShelf registries app
# Generated manually to match current model state

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models
import registries.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Registry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=200)),
                ('occasion_date', models.DateTimeField(blank=True, null=True)),
                ('deadline', models.DateTimeField(blank=True, null=True)),
                ('collaborators_can_invite', models.BooleanField(default=False)),
                ('allow_secret_gifts', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='owned_registries',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'verbose_name_plural': 'registries',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['owner'], name='registry_owner_idx')],
            },
        ),
        migrations.CreateModel(
            name='Collaborator',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('email', models.EmailField(max_length=254)),
                ('name', models.CharField(blank=True, max_length=100)),
                ('status', models.CharField(
                    choices=[('PENDING', 'Pending'), ('ACCEPTED', 'Accepted'), ('REMOVED', 'Removed')],
                    default='PENDING',
                    max_length=10,
                )),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('accepted_at', models.DateTimeField(blank=True, null=True)),
                ('removed_at', models.DateTimeField(blank=True, null=True)),
                ('registry', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='collaborators',
                    to='registries.registry',
                )),
                ('user', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='collaborations',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['user'], name='collab_user_idx'),
                    models.Index(fields=['registry', 'status'], name='collab_registry_status_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('registry', 'email'), name='uniq_registry_collaborator_email'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SubList',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(blank=True, max_length=200)),
                ('description', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('collaborator', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='sublist',
                    to='registries.collaborator',
                )),
                ('registry', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='sublists',
                    to='registries.registry',
                )),
            ],
            options={
                'indexes': [models.Index(fields=['registry'], name='sublist_registry_idx')],
            },
        ),
        migrations.CreateModel(
            name='Item',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('label', models.CharField(blank=True, max_length=500)),
                ('url', models.URLField(blank=True, max_length=2048)),
                ('description', models.TextField(blank=True)),
                ('is_secret', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(
                    choices=[('UNCLAIMED', 'Unclaimed'), ('CLAIMED', 'Claimed'), ('BOUGHT', 'Bought')],
                    default='UNCLAIMED',
                    max_length=10,
                )),
                ('claimed_at', models.DateTimeField(blank=True, null=True)),
                ('bought_at', models.DateTimeField(blank=True, null=True)),
                ('claimed_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='claimed_items',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('created_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='created_items',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('deleted_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='deleted_items',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('sublist', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='items',
                    to='registries.sublist',
                )),
            ],
            options={
                'ordering': ['created_at', 'id'],
                'indexes': [
                    models.Index(fields=['sublist'], name='item_sublist_idx'),
                    models.Index(fields=['claimed_by'], name='item_claimed_by_idx'),
                    models.Index(fields=['status'], name='item_status_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(
                        condition=(
                            models.Q(status='UNCLAIMED', claimed_by__isnull=True,
                                     claimed_at__isnull=True, bought_at__isnull=True)
                            | models.Q(status='CLAIMED', claimed_by__isnull=False,
                                       claimed_at__isnull=False, bought_at__isnull=True)
                            | models.Q(status='BOUGHT', claimed_by__isnull=False,
                                       claimed_at__isnull=False, bought_at__isnull=False)
                        ),
                        name='item_claim_state_consistent',
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name='InviteToken',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('token', models.SlugField(default=registries.models._invite_token, max_length=64, unique=True)),
                ('email', models.EmailField(max_length=254)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('expires_at', models.DateTimeField(default=registries.models._invite_expiry)),
                ('used', models.BooleanField(default=False)),
                ('collaborator', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='invite_tokens',
                    to='registries.collaborator',
                )),
                ('created_by', models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='issued_invites',
                    to=settings.AUTH_USER_MODEL,
                )),
                ('registry', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='invite_tokens',
                    to='registries.registry',
                )),
            ],
            options={
                'indexes': [
                    models.Index(fields=['registry'], name='invite_registry_idx'),
                    models.Index(fields=['email'], name='invite_email_idx'),
                    models.Index(fields=['expires_at'], name='invite_expires_idx'),
                    models.Index(fields=['collaborator', 'used'], name='invite_collab_used_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='UserProfile',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('display_name', models.CharField(blank=True, max_length=100)),
                ('user', models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='profile',
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
        ),
    ]
