import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Team',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'teams',
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('username', models.CharField(max_length=100)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('team', models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name='members',
                    to='reviews.team',
                    to_field='name',
                )),
            ],
            options={
                'db_table': 'users',
            },
        ),
        migrations.CreateModel(
            name='PullRequest',
            fields=[
                ('id', models.CharField(max_length=100, primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=256)),
                ('status', models.CharField(
                    choices=[('OPEN', 'Open'), ('MERGED', 'Merged')],
                    default='OPEN',
                    max_length=10,
                )),
                ('need_more_reviewers', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('merged_at', models.DateTimeField(blank=True, null=True)),
                ('author', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='authored_prs',
                    to='reviews.user',
                )),
            ],
            options={
                'db_table': 'pull_requests',
            },
        ),
        migrations.CreateModel(
            name='PullRequestReviewer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('pull_request', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='assignments',
                    to='reviews.pullrequest',
                )),
                ('user', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='review_assignments',
                    to='reviews.user',
                )),
            ],
            options={
                'db_table': 'pull_requests_reviewers',
            },
        ),
        migrations.AddField(
            model_name='pullrequest',
            name='reviewers',
            field=models.ManyToManyField(
                blank=True,
                related_name='assigned_prs',
                through='reviews.PullRequestReviewer',
                to='reviews.user',
            ),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['team', 'is_active'], name='users_team_active_idx'),
        ),
        migrations.AddConstraint(
            model_name='pullrequestreviewer',
            constraint=models.UniqueConstraint(fields=('pull_request', 'user'), name='uniq_pr_reviewer'),
        ),
    ]
