import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Room",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField()),
                ("price", models.PositiveIntegerField(help_text="Full-board nightly rate, used for ordering")),
                ("bed_only", models.PositiveIntegerField()),
                ("bb", models.PositiveIntegerField()),
                ("half_board", models.PositiveIntegerField()),
                ("full_board", models.PositiveIntegerField()),
                ("capacity", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("amenities", models.JSONField(blank=True, default=list)),
                ("image_url", models.URLField(blank=True, max_length=300)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["name"], name="room_name_idx"),
                    models.Index(fields=["price"], name="room_price_idx"),
                    models.Index(fields=["capacity"], name="room_capacity_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("guest_name", models.CharField(max_length=150)),
                ("guest_email", models.EmailField(max_length=254)),
                ("guest_phone", models.CharField(max_length=50)),
                ("check_in_date", models.DateField()),
                ("check_out_date", models.DateField()),
                ("number_of_guests", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("special_requests", models.TextField(blank=True)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("confirmed", "Confirmed"), ("cancelled", "Cancelled"), ("completed", "Completed")],
                    default="pending",
                    max_length=10,
                )),
                ("total_amount", models.PositiveIntegerField()),
                ("deposit_amount", models.PositiveIntegerField()),
                ("balance_amount", models.IntegerField()),
                ("deposit_paid", models.BooleanField(default=False)),
                ("payment_status", models.CharField(
                    choices=[("pending_deposit", "Pending Deposit"), ("deposit_paid", "Deposit Paid"), ("fully_paid", "Fully Paid")],
                    default="pending_deposit",
                    max_length=16,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("room", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="bookings", to="guest_house.room")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["guest_email"], name="booking_email_idx"),
                    models.Index(fields=["check_in_date", "check_out_date"], name="booking_dates_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                    models.Index(fields=["payment_status"], name="booking_pay_status_idx"),
                    models.Index(fields=["-created_at"], name="booking_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("check_out_date__gt", models.F("check_in_date"))),
                        name="booking_check_out_after_check_in",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.PositiveIntegerField()),
                ("payment_type", models.CharField(
                    choices=[("deposit", "Deposit"), ("balance", "Balance"), ("full", "Full")],
                    max_length=10,
                )),
                ("payment_method", models.CharField(
                    choices=[("mpesa", "M-Pesa"), ("cash", "Cash"), ("cheque", "Cheque"), ("bank_transfer", "Bank transfer")],
                    max_length=16,
                )),
                ("payment_reference", models.CharField(blank=True, max_length=100)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("completed", "Completed"), ("failed", "Failed"), ("refunded", "Refunded")],
                    default="pending",
                    max_length=10,
                )),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("booking", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="payments", to="guest_house.booking")),
            ],
            options={
                "indexes": [
                    models.Index(fields=["status"], name="payment_status_idx"),
                    models.Index(fields=["payment_type"], name="payment_type_idx"),
                    models.Index(fields=["payment_method"], name="payment_method_idx"),
                    models.Index(fields=["-created_at"], name="payment_created_idx"),
                ],
            },
        ),
    ]
