from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


STATUS_CHOICES = [
    ("submitted", "Submitted"),
    ("in_discussion", "In discussion"),
    ("quote_sent", "Quote sent"),
    ("quote_accepted", "Quote accepted"),
    ("in_production", "In production"),
    ("ready", "Ready"),
    ("delivered", "Delivered"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("account", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="CustomOrder",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order_number", models.CharField(max_length=24, unique=True)),
                ("product_type", models.CharField(max_length=80)),
                ("preferred_fabrics", models.JSONField(blank=True, default=list)),
                ("intended_occasion", models.CharField(blank=True, max_length=80)),
                ("color_preferences", models.CharField(blank=True, max_length=255)),
                ("size_requirements", models.TextField(blank=True)),
                ("design_instructions", models.TextField(blank=True)),
                ("special_requirements", models.TextField(blank=True)),
                ("budget_range", models.CharField(choices=[("under-5000", "Under ₹5,000"), ("5000-10000", "₹5,000 - ₹10,000"), ("10000-20000", "₹10,000 - ₹20,000"), ("20000-50000", "₹20,000 - ₹50,000"), ("above-50000", "Above ₹50,000"), ("flexible", "Flexible")], max_length=20)),
                ("expected_delivery_timeline", models.CharField(choices=[("1-2-weeks", "1-2 Weeks"), ("2-4-weeks", "2-4 Weeks"), ("1-2-months", "1-2 Months"), ("2-3-months", "2-3 Months"), ("flexible", "Flexible")], max_length=20)),
                ("status", models.CharField(choices=STATUS_CHOICES, default="submitted", max_length=20)),
                ("estimated_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("final_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("estimated_completion_date", models.DateField(blank=True, null=True)),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("discussion_started_at", models.DateTimeField(blank=True, null=True)),
                ("quote_sent_at", models.DateTimeField(blank=True, null=True)),
                ("quote_accepted_at", models.DateTimeField(blank=True, null=True)),
                ("production_started_at", models.DateTimeField(blank=True, null=True)),
                ("ready_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("assigned_to", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="assigned_custom_orders", to=settings.AUTH_USER_MODEL)),
                ("customer", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="custom_orders", to="account.customer")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="custom_orders", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status"], name="custom_order_status_idx"),
                    models.Index(fields=["user", "created_at"], name="custom_order_user_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustomOrderImage",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("image_url", models.URLField()),
                ("caption", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("custom_order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="images", to="custom_orders.customorder")),
                ("uploaded_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="CustomOrderStatusHistory",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("notes", models.TextField(blank=True)),
                ("is_override", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("changed_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
                ("custom_order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="status_history", to="custom_orders.customorder")),
            ],
            options={
                "verbose_name_plural": "Custom order status history",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="CustomOrderMessage",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("message", models.TextField()),
                ("is_internal", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("custom_order", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="messages", to="custom_orders.customorder")),
                ("user", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["created_at"],
            },
        ),
    ]
