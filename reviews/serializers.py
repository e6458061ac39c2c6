from rest_framework import serializers


class TeamMemberSerializer(serializers.Serializer):
    user_id = serializers.CharField(source='id', allow_blank=True, trim_whitespace=False)
    username = serializers.CharField(allow_blank=True, trim_whitespace=False)
    is_active = serializers.BooleanField(default=True)


class TeamSerializer(serializers.Serializer):
    team_name = serializers.CharField(source='name', allow_blank=True, trim_whitespace=False)
    members = serializers.ListField(child=TeamMemberSerializer(allow_null=True), required=False, default=list)


class UserSerializer(serializers.Serializer):
    user_id = serializers.CharField(source='id')
    username = serializers.CharField()
    team_name = serializers.CharField(allow_null=True)
    is_active = serializers.BooleanField()


class SetActiveSerializer(serializers.Serializer):
    user_id = serializers.CharField(allow_blank=True, trim_whitespace=False)
    is_active = serializers.BooleanField()


class PullRequestSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='title')
    author_id = serializers.CharField()
    status = serializers.CharField()
    assigned_reviewers = serializers.ListField(source='reviewers', child=serializers.CharField())
    need_more_reviewers = serializers.BooleanField()
    createdAt = serializers.DateTimeField(source='created_at', format='%Y-%m-%dT%H:%M:%SZ', allow_null=True)
    mergedAt = serializers.DateTimeField(source='merged_at', format='%Y-%m-%dT%H:%M:%SZ', allow_null=True)


class PullRequestShortSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='title')
    author_id = serializers.CharField()
    status = serializers.CharField()


class UserAssignmentsStatSerializer(serializers.Serializer):
    user_id = serializers.CharField()
    assignments = serializers.IntegerField()


class PRAssignmentsStatSerializer(serializers.Serializer):
    pull_request_id = serializers.CharField()
    reviewers = serializers.IntegerField()


class AssignmentsStatsSerializer(serializers.Serializer):
    by_user = UserAssignmentsStatSerializer(many=True)
    by_pr = PRAssignmentsStatSerializer(many=True)
