from django.db import models


class Team(models.Model):
    name = models.CharField(max_length=100, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'teams'


class User(models.Model):
    id = models.CharField(max_length=64, primary_key=True)
    username = models.CharField(max_length=100)
    team = models.ForeignKey(
        Team,
        to_field='name',
        on_delete=models.SET_NULL,
        related_name='members',
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.username} ({self.id})"

    class Meta:
        db_table = 'users'
        indexes = [
            models.Index(fields=['team', 'is_active'], name='users_team_active_idx'),
        ]


class PullRequest(models.Model):
    class Status(models.TextChoices):
        OPEN = 'OPEN', 'Open'
        MERGED = 'MERGED', 'Merged'

    id = models.CharField(max_length=100, primary_key=True)
    title = models.CharField(max_length=256)
    author = models.ForeignKey(User, on_delete=models.CASCADE, related_name='authored_prs')
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.OPEN)
    need_more_reviewers = models.BooleanField(default=False)
    reviewers = models.ManyToManyField(
        User,
        through='PullRequestReviewer',
        related_name='assigned_prs',
        blank=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    merged_at = models.DateTimeField(null=True, blank=True)

    def __str__(self):
        return f"{self.title} ({self.id})"

    class Meta:
        db_table = 'pull_requests'


class PullRequestReviewer(models.Model):
    pull_request = models.ForeignKey(PullRequest, on_delete=models.CASCADE, related_name='assignments')
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='review_assignments')
    assigned_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.user_id} -> {self.pull_request_id}"

    class Meta:
        db_table = 'pull_requests_reviewers'
        constraints = [
            models.UniqueConstraint(fields=['pull_request', 'user'], name='uniq_pr_reviewer'),
        ]
