# models.py
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.mutable import MutableDict
import datetime

# ✅ Import the SAME Base object from database.py
from database import Base
from utils.report_totals import LEGACY_SENSOR_CODES, calculate_totals, to_bool
from utils.sensor_config import SensorRef

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
SensorsJSON = MutableDict.as_mutable(JSON().with_variant(JSONB(), "postgresql"))


# ===============================
# 👤 USER MODEL (Admin authentication)
# ===============================
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False)
    email = Column(String(120), nullable=False, unique=True, index=True)

    # ✅ bcrypt hashes are ~60 chars, give safe room
    hashed_password = Column(String(128), nullable=False)


# ===============================
# 📡 SENSOR REGISTRY (global catalog)
# ===============================
class Sensor(Base):
    __tablename__ = "fms_sensor_config"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)


# ===============================
# 🚢 SHIPS
# ===============================
class Ship(Base):
    __tablename__ = "fms_ships"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    code = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)


# ===============================
# 🔀 PER-SHIP SENSOR OVERRIDES
# sensor_code is a weak reference: no FK to fms_sensor_config,
# orphaned rows are ignored at resolve time.
# ===============================
class ShipSensorOverride(Base):
    __tablename__ = "fms_ship_sensors"

    ship_id = Column(
        Integer,
        ForeignKey("fms_ships.id", ondelete="CASCADE"),
        primary_key=True,
    )
    sensor_code = Column(String(50), primary_key=True)
    is_active = Column(Boolean, nullable=False, default=True)

    @property
    def sensor_ref(self) -> SensorRef:
        return SensorRef(self.sensor_code)


# ===============================
# 📁 PROJECTS
# ===============================
class Project(Base):
    __tablename__ = "fms_projects"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)


# ===============================
# 📊 DEVICE REPORTS
# ===============================
class DeviceReport(Base):
    __tablename__ = "fms_device_reports"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False)
    report_date = Column(Date, nullable=False)
    ship_name = Column(String(255), nullable=False)

    # 🧱 Canonical sensor map: {sensor_code: bool}
    sensors_data = Column(SensorsJSON, nullable=False, default=dict)

    # Legacy columns, regenerated from sensors_data on every flush
    device_condition = Column(Boolean, nullable=False, default=False)
    gps = Column(Boolean, nullable=False, default=False)
    rpm_me_port = Column(Boolean, nullable=False, default=False)
    rpm_me_stbd = Column(Boolean, nullable=False, default=False)
    flowmeter_input = Column(Boolean, nullable=False, default=False)
    flowmeter_output = Column(Boolean, nullable=False, default=False)
    flowmeter_bunker = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.datetime.utcnow)
    updated_at = Column(
        DateTime,
        default=datetime.datetime.utcnow,
        onupdate=datetime.datetime.utcnow,
    )

    __table_args__ = (
        Index("idx_fms_device_reports_code", "code"),
        Index("idx_fms_device_reports_date", "report_date"),
        Index("idx_fms_device_reports_ship", "ship_name"),
    )

    def legacy_values(self) -> dict:
        return {c: bool(getattr(self, c)) for c in LEGACY_SENSOR_CODES}

    def sensor_map(self) -> dict:
        """
        Effective {code: bool} for this report.
        Legacy rows (empty sensors_data) are read through the legacy columns.
        """
        if self.sensors_data:
            return {k: to_bool(v) for k, v in self.sensors_data.items()}
        return self.legacy_values()

    def set_sensor(self, code: str, value: bool) -> None:
        # materialise legacy rows first so the derived columns keep their state
        data = self.sensor_map()
        data[code] = bool(value)
        self.sensors_data = data

    def sync_legacy_columns(self) -> None:
        if not self.sensors_data:
            return
        data = self.sensor_map()
        for c in LEGACY_SENSOR_CODES:
            setattr(self, c, data.get(c, False))

    def totals(self):
        return calculate_totals(self.sensors_data, self.legacy_values())


@event.listens_for(DeviceReport, "before_insert")
@event.listens_for(DeviceReport, "before_update")
def _derive_legacy_columns(mapper, connection, target: DeviceReport):
    target.sync_legacy_columns()


# ===============================
# ⚙️ APP CONFIG (key/value)
# ===============================
class AppConfig(Base):
    __tablename__ = "fms_app_config"

    key = Column(String(50), primary_key=True)
    value = Column(Text, nullable=True)
