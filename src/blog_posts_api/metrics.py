"""Shared OTel metrics instruments for the service."""

from opentelemetry import metrics

METER_NAME = "blog_posts_api"

meter = metrics.get_meter(METER_NAME)

posts_created_total = meter.create_counter(
    name="posts_created_total",
    description="Blog posts created via POST /posts",
    unit="1",
)

posts_updated_total = meter.create_counter(
    name="posts_updated_total",
    description="Blog posts updated via PUT /posts/{id}",
    unit="1",
)

posts_deleted_total = meter.create_counter(
    name="posts_deleted_total",
    description="DELETE /posts/{id} requests, labelled by whether a post was removed",
    unit="1",
)

store_errors_total = meter.create_counter(
    name="store_errors_total",
    description="Requests failed because the storage backend was unreachable",
    unit="1",
)
