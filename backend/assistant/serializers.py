from rest_framework import serializers


class AssistantQuerySerializer(serializers.Serializer):
    message = serializers.CharField(max_length=500, error_messages={
        'required': 'Message is required',
        'blank': 'Message is required',
    })
