"""
Internationalization support
"""

from budgetflow.config import DEFAULT_LANGUAGE


class I18n:
    def __init__(self):
        self.translations = {}
        self.load_translations()

    def load_translations(self):
        self.translations = {
            "en-US": {
                "Draft": "Draft",
                "Submitted": "Submitted",
                "UnderReview": "Under review",
                "Approved": "Approved",
                "Rejected": "Rejected",
                "Active": "Active",
                "Completed": "Completed",
                "Cancelled": "Cancelled",
                "Pending": "Pending",
                "RequestMoreInfo": "More information requested",
                "Monthly": "Monthly",
                "Quarterly": "Quarterly",
                "Annual": "Annual",
                "Manager": "Manager",
                "Finance": "Finance",
                "Executive": "Executive",
            },
            "zh-CN": {
                "Draft": "草稿",
                "Submitted": "已提交",
                "UnderReview": "审核中",
                "Approved": "已审核",
                "Rejected": "已拒绝",
                "Active": "执行中",
                "Completed": "已完成",
                "Cancelled": "已取消",
                "Pending": "待审核",
                "RequestMoreInfo": "需补充信息",
                "Monthly": "月度",
                "Quarterly": "季度",
                "Annual": "年度",
                "Manager": "经理",
                "Finance": "财务",
                "Executive": "高管",
            }
        }

    def translate(self, key: str, language: str = DEFAULT_LANGUAGE) -> str:
        return self.translations.get(language, {}).get(key, key)


i18n = I18n()
