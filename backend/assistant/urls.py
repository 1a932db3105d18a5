from django.urls import path
from .views import assistant_query

urlpatterns = [
    path('assistant/query/', assistant_query, name='assistant-query'),
]
