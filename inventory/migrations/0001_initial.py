from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
        ("order", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Inventory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("quantity", models.PositiveIntegerField(default=0)),
                ("reserved_quantity", models.PositiveIntegerField(default=0)),
                ("location", models.CharField(blank=True, max_length=120)),
                ("last_restocked_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("product", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="inventory", to="catalog.product")),
            ],
            options={
                "verbose_name_plural": "Inventory",
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("reserved_quantity__lte", models.F("quantity"))), name="inventory_reserved_within_on_hand"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity_change", models.IntegerField()),
                ("movement_type", models.CharField(choices=[("restock", "Restock"), ("sale", "Sale"), ("adjustment", "Adjustment")], max_length=20)),
                ("reference_type", models.CharField(blank=True, max_length=40)),
                ("reference_id", models.CharField(blank=True, max_length=64)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="stock_movements", to="catalog.product")),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["product", "created_at"], name="inv_movement_product_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="inv_movement_reference_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockReservation",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity", models.PositiveIntegerField()),
                ("status", models.CharField(choices=[("held", "Held"), ("committed", "Committed"), ("released", "Released"), ("returned", "Returned to stock")], default="held", max_length=20)),
                ("reference", models.CharField(blank=True, max_length=64)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("order", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="reservations", to="order.order")),
                ("product", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reservations", to="catalog.product")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="inv_reservation_status_idx"),
                    models.Index(fields=["reference"], name="inv_reservation_ref_idx"),
                ],
            },
        ),
    ]
