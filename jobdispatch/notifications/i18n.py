"""Per-locale label catalog used by the notification templates.

Labels containing ``%(name)s`` placeholders are filled in the templates with
Jinja's ``format`` filter.
"""

from typing import Dict, Optional

from jobdispatch.domain.models import CancellationReason

from .timelabels import resolve_locale

LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "service": "Service",
        "date": "Date",
        "time": "Time",
        "duration": "Duration",
        "location": "Location",
        "hotel": "Hotel",
        "room": "Room",
        "earnings": "Earnings",
        "customer": "Customer",
        "booking_number": "Booking no.",
        "reason": "Reason",
        "notes": "Notes",
        "staff": "Staff",
        "currency": "THB",
        "job_details": "Job details",
        "view_job": "View job details",
        "accept_now": "Accept now",
        "open_app": "Open the app to accept this job",
        "recipient_numbered": "Guest %(number)s",
        "recipient_default": "guest",
        "new_job_subject": "New job: %(service)s",
        "new_job_title": "New job available!",
        "new_group_job_subject": "New couple job: %(count)s staff needed",
        "new_group_job_title": "New couple job! (%(count)s staff needed)",
        "re_available_subject": "Job available again: %(service)s",
        "re_available_title": "Job available again! (staff cancelled)",
        "group_position": "Couple booking (%(name)s)",
        "cancelled_admin_subject": "Staff cancelled: %(service)s",
        "cancelled_admin_title": "Staff cancelled a job",
        "fill_ratio": "Couple booking: %(ratio)s positions still staffed",
        "replacement_created": "A new offer was created and other staff have been notified.",
        "booking_cancelled_subject": "Job cancelled: %(service)s",
        "booking_cancelled_title": "Job cancelled by admin",
        "refund_status": "Customer refund status",
        "reminder_subject": "Job in %(label)s: %(service)s",
        "reminder_title": "Reminder: you have a job in %(label)s!",
        "escalation_subject": "Still unclaimed (%(label)s): %(service)s",
        "escalation_title": "Job still unclaimed! (waiting %(label)s)",
        "escalation_urgent_subject": "URGENT - still unclaimed (%(label)s): %(service)s",
        "escalation_urgent_title": "URGENT: job still unclaimed! (waiting %(label)s)",
        "unassigned_admin_subject": "Unassigned job: %(service)s",
        "unassigned_admin_title": "No staff has accepted this job after %(label)s",
        "escalation_level": "Escalation level",
        "eligible_notified": "Eligible staff notified",
        "manual_assignment": "Please assign a staff member manually.",
    },
    "th": {
        "service": "บริการ",
        "date": "วันที่",
        "time": "เวลา",
        "duration": "ระยะเวลา",
        "location": "สถานที่",
        "hotel": "โรงแรม",
        "room": "ห้อง",
        "earnings": "รายได้",
        "customer": "ลูกค้า",
        "booking_number": "เลขที่จอง",
        "reason": "เหตุผล",
        "notes": "หมายเหตุ",
        "staff": "Staff",
        "currency": "บาท",
        "job_details": "รายละเอียดงาน",
        "view_job": "ดูรายละเอียดงาน",
        "accept_now": "กดรับงานเลย",
        "open_app": "เปิดแอปเพื่อรับงานนี้",
        "recipient_numbered": "คนที่ %(number)s",
        "recipient_default": "ผู้รับบริการ",
        "new_job_subject": "งานใหม่: %(service)s",
        "new_job_title": "มีงานใหม่!",
        "new_group_job_subject": "งาน Couple ใหม่: ต้องการ %(count)s คน",
        "new_group_job_title": "มีงาน Couple ใหม่! (ต้องการ %(count)s คน)",
        "re_available_subject": "มีงานว่าง: %(service)s",
        "re_available_title": "มีงานว่าง! (Staff ยกเลิก)",
        "group_position": "Couple booking (%(name)s)",
        "cancelled_admin_subject": "Staff ยกเลิกงาน: %(service)s",
        "cancelled_admin_title": "Staff ยกเลิกงาน",
        "fill_ratio": "Couple booking: ยังมี Staff รับงานอยู่ %(ratio)s ตำแหน่ง",
        "replacement_created": "ระบบได้สร้างงานใหม่และแจ้ง Staff อื่นแล้ว",
        "booking_cancelled_subject": "งานถูกยกเลิก: %(service)s",
        "booking_cancelled_title": "งานถูกยกเลิกโดยแอดมิน",
        "refund_status": "สถานะคืนเงินลูกค้า",
        "reminder_subject": "มีงานใน %(label)s: %(service)s",
        "reminder_title": "แจ้งเตือน: มีงานใน %(label)s!",
        "escalation_subject": "งานยังไม่มีคนรับ (%(label)s): %(service)s",
        "escalation_title": "งานยังไม่มีคนรับ! (รอมาแล้ว %(label)s)",
        "escalation_urgent_subject": "ด่วน! งานยังไม่มีคนรับ (%(label)s): %(service)s",
        "escalation_urgent_title": "ด่วน! งานยังไม่มีคนรับ! (รอมาแล้ว %(label)s)",
        "unassigned_admin_subject": "งานยังไม่มีคนรับ: %(service)s",
        "unassigned_admin_title": "ยังไม่มี Staff รับงานนี้หลังจาก %(label)s",
        "escalation_level": "ระดับการแจ้งเตือน",
        "eligible_notified": "จำนวน Staff ที่แจ้งเตือน",
        "manual_assignment": "กรุณามอบหมาย Staff ด้วยตนเอง",
    },
    "cn": {
        "service": "服务",
        "date": "日期",
        "time": "时间",
        "duration": "时长",
        "location": "地点",
        "hotel": "酒店",
        "room": "房间",
        "earnings": "收入",
        "customer": "客户",
        "booking_number": "预订编号",
        "reason": "原因",
        "notes": "备注",
        "staff": "员工",
        "currency": "泰铢",
        "job_details": "工作详情",
        "view_job": "查看工作详情",
        "accept_now": "立即接单",
        "open_app": "打开应用接受此工作",
        "recipient_numbered": "第 %(number)s 位",
        "recipient_default": "顾客",
        "new_job_subject": "新工作：%(service)s",
        "new_job_title": "有新工作！",
        "new_group_job_subject": "新双人工作：需要 %(count)s 名员工",
        "new_group_job_title": "有新双人工作！（需要 %(count)s 名员工）",
        "re_available_subject": "工作重新开放：%(service)s",
        "re_available_title": "工作重新开放！（员工已取消）",
        "group_position": "双人预订（%(name)s）",
        "cancelled_admin_subject": "员工取消：%(service)s",
        "cancelled_admin_title": "员工取消了工作",
        "fill_ratio": "双人预订：仍有 %(ratio)s 个位置已有员工",
        "replacement_created": "系统已创建新工作并通知其他员工。",
        "booking_cancelled_subject": "工作已取消：%(service)s",
        "booking_cancelled_title": "工作已被管理员取消",
        "refund_status": "客户退款状态",
        "reminder_subject": "%(label)s后有工作：%(service)s",
        "reminder_title": "提醒：%(label)s后有工作！",
        "escalation_subject": "仍无人接单（%(label)s）：%(service)s",
        "escalation_title": "工作仍无人接单！（已等待 %(label)s）",
        "escalation_urgent_subject": "紧急：仍无人接单（%(label)s）：%(service)s",
        "escalation_urgent_title": "紧急：工作仍无人接单！（已等待 %(label)s）",
        "unassigned_admin_subject": "无人接单：%(service)s",
        "unassigned_admin_title": "等待 %(label)s 后仍无员工接单",
        "escalation_level": "提醒级别",
        "eligible_notified": "已通知员工数",
        "manual_assignment": "请手动分配员工。",
    },
}

REASON_LABELS: Dict[str, Dict[CancellationReason, str]] = {
    "en": {
        CancellationReason.SCHEDULE_CONFLICT: "Schedule conflict",
        CancellationReason.ILLNESS: "Illness",
        CancellationReason.EMERGENCY: "Emergency",
        CancellationReason.TRANSPORTATION: "Transportation problem",
        CancellationReason.PERSONAL: "Personal reasons",
        CancellationReason.OTHER: "Other",
    },
    "th": {
        CancellationReason.SCHEDULE_CONFLICT: "ตารางงานชนกัน",
        CancellationReason.ILLNESS: "เจ็บป่วย",
        CancellationReason.EMERGENCY: "เหตุฉุกเฉิน",
        CancellationReason.TRANSPORTATION: "ปัญหาการเดินทาง",
        CancellationReason.PERSONAL: "เหตุผลส่วนตัว",
        CancellationReason.OTHER: "อื่นๆ",
    },
    "cn": {
        CancellationReason.SCHEDULE_CONFLICT: "时间冲突",
        CancellationReason.ILLNESS: "生病",
        CancellationReason.EMERGENCY: "紧急情况",
        CancellationReason.TRANSPORTATION: "交通问题",
        CancellationReason.PERSONAL: "个人原因",
        CancellationReason.OTHER: "其他",
    },
}

REFUND_STATUS_LABELS: Dict[str, Dict[str, str]] = {
    "en": {
        "pending": "Pending",
        "processing": "Processing",
        "completed": "Refunded",
        "failed": "Refund failed",
        "not_applicable": "No refund",
    },
    "th": {
        "pending": "รอดำเนินการ",
        "processing": "กำลังดำเนินการ",
        "completed": "คืนเงินแล้ว",
        "failed": "คืนเงินไม่สำเร็จ",
        "not_applicable": "ไม่มีการคืนเงิน",
    },
    "cn": {
        "pending": "待处理",
        "processing": "处理中",
        "completed": "已退款",
        "failed": "退款失败",
        "not_applicable": "无退款",
    },
}


def get_labels(locale) -> Dict[str, str]:
    return LABELS[resolve_locale(locale)]


def reason_label(reason: CancellationReason, locale) -> str:
    return REASON_LABELS[resolve_locale(locale)][CancellationReason.parse(reason)]


def refund_status_label(status: Optional[str], locale) -> Optional[str]:
    """Localized refund status; unknown statuses are shown as given."""
    if not status:
        return None
    return REFUND_STATUS_LABELS[resolve_locale(locale)].get(status, status)
