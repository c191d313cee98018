from rest_framework import serializers

from .models import PullRequest, Team, User


class TeamMemberSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(source='id')
    username = serializers.CharField()
    is_active = serializers.BooleanField()

    class Meta:
        model = User
        fields = ['user_id', 'username', 'is_active']


class TeamSerializer(serializers.ModelSerializer):
    team_name = serializers.CharField(source='name')
    members = TeamMemberSerializer(many=True, source='member_list')

    class Meta:
        model = Team
        fields = ['team_name', 'members']


class UserSerializer(serializers.ModelSerializer):
    user_id = serializers.CharField(source='id')
    username = serializers.CharField()
    team_name = serializers.CharField(source='team.name')
    is_active = serializers.BooleanField()

    class Meta:
        model = User
        fields = ['user_id', 'username', 'team_name', 'is_active']


class PullRequestSerializer(serializers.ModelSerializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='name')
    author_id = serializers.CharField()
    status = serializers.CharField()
    assigned_reviewers = serializers.ListField(child=serializers.CharField())
    createdAt = serializers.DateTimeField(source='created_at', format='%Y-%m-%dT%H:%M:%SZ')
    mergedAt = serializers.DateTimeField(source='merged_at', format='%Y-%m-%dT%H:%M:%SZ', allow_null=True)

    class Meta:
        model = PullRequest
        fields = [
            'pull_request_id', 'pull_request_name', 'author_id',
            'status', 'assigned_reviewers', 'createdAt', 'mergedAt'
        ]


class PullRequestShortSerializer(serializers.ModelSerializer):
    pull_request_id = serializers.CharField(source='id')
    pull_request_name = serializers.CharField(source='name')
    author_id = serializers.CharField()
    status = serializers.CharField()

    class Meta:
        model = PullRequest
        fields = ['pull_request_id', 'pull_request_name', 'author_id', 'status']


class StrictCharField(serializers.CharField):
    """CharField, не приводящий числа и другие типы к строке"""

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail('invalid')
        return super().to_internal_value(data)


class StrictBooleanField(serializers.BooleanField):
    """BooleanField, принимающий только JSON true/false"""

    def to_internal_value(self, data):
        if not isinstance(data, bool):
            self.fail('invalid', input=data)
        return data


class TeamMemberInputSerializer(serializers.Serializer):
    user_id = StrictCharField()
    username = StrictCharField()
    is_active = StrictBooleanField()


class TeamAddInputSerializer(serializers.Serializer):
    team_name = StrictCharField()
    members = TeamMemberInputSerializer(many=True, required=False)


class TeamNameInputSerializer(serializers.Serializer):
    team_name = StrictCharField()


class BulkDeactivateInputSerializer(serializers.Serializer):
    team_name = StrictCharField()
    user_ids = serializers.ListField(child=StrictCharField(), required=False, allow_null=True)


class UserIdInputSerializer(serializers.Serializer):
    user_id = StrictCharField()


class SetIsActiveInputSerializer(serializers.Serializer):
    user_id = StrictCharField()
    is_active = StrictBooleanField()


class PullRequestIdInputSerializer(serializers.Serializer):
    pull_request_id = StrictCharField()


class PullRequestCreateInputSerializer(serializers.Serializer):
    pull_request_id = StrictCharField()
    pull_request_name = StrictCharField()
    author_id = StrictCharField()


class ReassignInputSerializer(serializers.Serializer):
    pull_request_id = StrictCharField()
    old_user_id = StrictCharField()


class BulkDeactivateResultSerializer(serializers.Serializer):
    team_name = serializers.CharField()
    deactivated_user_ids = serializers.ListField(child=serializers.CharField())
    reassigned_count = serializers.IntegerField()


class UserReviewStatsSerializer(serializers.Serializer):
    id = serializers.CharField()
    username = serializers.CharField()
    prs_reviewed = serializers.IntegerField()
    open_prs_reviewed = serializers.IntegerField()
    merged_prs_reviewed = serializers.IntegerField()


class PRReviewerStatsSerializer(serializers.Serializer):
    id = serializers.CharField()
    name = serializers.CharField()
    status = serializers.CharField()
    team_name = serializers.CharField()
    reviewers_count = serializers.IntegerField()
    created_at = serializers.DateTimeField(format='%Y-%m-%dT%H:%M:%SZ')
    merged_at = serializers.DateTimeField(format='%Y-%m-%dT%H:%M:%SZ', allow_null=True)


class StatsSerializer(serializers.Serializer):
    user_review_stats = UserReviewStatsSerializer(many=True)
    pr_reviewer_stats = PRReviewerStatsSerializer(many=True)
