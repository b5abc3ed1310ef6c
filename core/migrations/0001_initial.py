import core.validators
import django.contrib.auth.models
import django.contrib.auth.validators
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('username', models.CharField(error_messages={'unique': 'A user with that username already exists.'}, help_text='Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.', max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name='username')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('email', models.EmailField(error_messages={'unique': 'A user with that email already exists.'}, help_text='Required. Enter a valid email address.', max_length=254, unique=True, verbose_name='email address')),
                ('user_type', models.CharField(choices=[('customer', 'Customer'), ('printer_owner', 'Printer Owner')], default='customer', help_text='Which side of the marketplace the account signed up for.', max_length=20, verbose_name='user type')),
                ('created_at', models.DateTimeField(auto_now_add=True, help_text='Timestamp when the account was created.', verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, help_text='Timestamp when the account was last updated.', verbose_name='updated at')),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'user',
                'verbose_name_plural': 'users',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user_type'], name='core_user_type_idx')],
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='Printer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Display name of the printer', max_length=255, verbose_name='name')),
                ('location', models.CharField(help_text='Declared location, e.g. "Austin, TX"', max_length=255, verbose_name='location')),
                ('materials', models.JSONField(default=list, help_text='Supported materials, e.g. ["PLA", "PETG"]', validators=[core.validators.validate_materials], verbose_name='materials')),
                ('price_per_gram', models.DecimalField(decimal_places=4, help_text='Price per gram in USD', max_digits=10, validators=[core.validators.validate_price_per_gram], verbose_name='price per gram')),
                ('status', models.CharField(choices=[('available', 'Available'), ('busy', 'Busy'), ('unavailable', 'Unavailable')], default='available', help_text='Whether the printer currently accepts work', max_length=20, verbose_name='status')),
                ('rating', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Average rating from 0.00 to 5.00', max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00'), message='Rating cannot be negative.'), django.core.validators.MaxValueValidator(Decimal('5.00'), message='Rating cannot exceed 5.00.')], verbose_name='rating')),
                ('completed_jobs', models.PositiveIntegerField(default=0, help_text='Number of jobs completed on this printer', verbose_name='completed jobs')),
                ('description', models.TextField(blank=True, default='', verbose_name='description')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('owner', models.ForeignKey(help_text='User who owns and operates this printer', on_delete=django.db.models.deletion.CASCADE, related_name='printers', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'printer',
                'verbose_name_plural': 'printers',
                'ordering': ['-rating', 'id'],
                'indexes': [
                    models.Index(fields=['owner'], name='core_printer_owner_idx'),
                    models.Index(fields=['status'], name='core_printer_status_idx'),
                    models.Index(fields=['rating'], name='core_printer_rating_idx'),
                    models.Index(fields=['price_per_gram'], name='core_printer_price_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Job',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file_name', models.CharField(blank=True, default='', max_length=255, verbose_name='file name')),
                ('stl_file_url', models.CharField(blank=True, default='', max_length=255, verbose_name='STL file URL')),
                ('material', models.CharField(blank=True, default='', help_text='Required material; blank means any material', max_length=50, verbose_name='material')),
                ('estimated_weight', models.DecimalField(blank=True, decimal_places=2, help_text='Estimated weight in grams', max_digits=8, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))], verbose_name='estimated weight')),
                ('estimated_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='estimated cost')),
                ('final_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='final cost')),
                ('notes', models.TextField(blank=True, default='', verbose_name='notes')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('matched', 'Matched'), ('printing', 'Printing'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], default='pending', max_length=20, verbose_name='status')),
                ('payment_status', models.CharField(choices=[('unpaid', 'Unpaid'), ('paid', 'Paid')], default='unpaid', max_length=20, verbose_name='payment status')),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('customer', models.ForeignKey(help_text='Customer who requested the print', on_delete=django.db.models.deletion.CASCADE, related_name='jobs', to=settings.AUTH_USER_MODEL)),
                ('printer', models.ForeignKey(blank=True, help_text='Printer assigned to this job, if any', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='jobs', to='core.printer')),
            ],
            options={
                'verbose_name': 'job',
                'verbose_name_plural': 'jobs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer'], name='core_job_customer_idx'),
                    models.Index(fields=['printer'], name='core_job_printer_idx'),
                    models.Index(fields=['status'], name='core_job_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Bid',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('amount', models.DecimalField(decimal_places=2, help_text='Total price offered in USD', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'), message='Bid amount must be greater than 0.')], verbose_name='amount')),
                ('estimated_completion_days', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1, message='Estimated completion must be at least 1 day.')], verbose_name='estimated completion days')),
                ('notes', models.CharField(blank=True, default='', max_length=500, verbose_name='notes')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('accepted', 'Accepted'), ('rejected', 'Rejected'), ('withdrawn', 'Withdrawn'), ('expired', 'Expired')], default='pending', max_length=20, verbose_name='status')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='updated at')),
                ('resolved_at', models.DateTimeField(blank=True, null=True, verbose_name='resolved at')),
                ('bidder', models.ForeignKey(help_text='User who submitted the bid (the printer owner)', on_delete=django.db.models.deletion.CASCADE, related_name='bids', to=settings.AUTH_USER_MODEL)),
                ('job', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bids', to='core.job')),
                ('printer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bids', to='core.printer')),
            ],
            options={
                'verbose_name': 'bid',
                'verbose_name_plural': 'bids',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['job', 'status'], name='core_bid_job_status_idx'),
                    models.Index(fields=['printer'], name='core_bid_printer_idx'),
                    models.Index(fields=['bidder'], name='core_bid_bidder_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status', 'pending')), fields=('job', 'printer'), name='unique_pending_bid_per_printer_job'),
                    models.CheckConstraint(condition=models.Q(('amount__gt', 0)), name='bid_amount_positive'),
                    models.CheckConstraint(condition=models.Q(('estimated_completion_days__gt', 0)), name='bid_completion_days_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('type', models.CharField(max_length=50, verbose_name='type')),
                ('title', models.CharField(max_length=255, verbose_name='title')),
                ('message', models.TextField(verbose_name='message')),
                ('data', models.JSONField(blank=True, default=dict, verbose_name='data')),
                ('read', models.BooleanField(default=False, verbose_name='read')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='created at')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'notification',
                'verbose_name_plural': 'notifications',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['user', 'read'], name='core_notif_user_read_idx')],
            },
        ),
    ]
