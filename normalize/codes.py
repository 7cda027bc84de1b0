# normalize/codes.py
import re
from typing import Any, Dict

NUMERIC_CODE = re.compile(r"^\d+$")


def number_text(value) -> str:
    try:
        return str(value)
    except ValueError:
        # int past the interpreter's digit limit for str()
        return ""


class CodeTable:
    """
    Small integer code -> canonical label lookup for one coded form field
    Labels and unknown values pass through as strings
    """

    def __init__(self, name: str, labels: Dict[int, str]):
        self.name = name
        self.labels = dict(labels)
        # keyed by the code's digits so numeric strings never go through int()
        self.by_digits = {str(code): label for code, label in self.labels.items()}

    def to_label(self, value: Any) -> str:
        if value is None or isinstance(value, bool):
            return ""

        if isinstance(value, int):
            return self.labels.get(value) or number_text(value)

        if isinstance(value, float):
            if value.is_integer() and value in self.labels:
                return self.labels[int(value)]
            return number_text(value)

        if isinstance(value, str):
            stripped = value.strip()
            if NUMERIC_CODE.match(stripped):
                return self.by_digits.get(stripped.lstrip("0") or "0", value)
            return value

        # dicts, lists and other shapes are not codes
        return ""


GENDER = CodeTable("gender", {1: "男", 2: "女"})

MARITAL_STATUS = CodeTable("marital_status", {
    1: "未婚",
    2: "已婚",
    3: "丧偶",
    4: "离婚",
    9: "其他",
})

ADMISSION_PATH = CodeTable("admission_path", {
    1: "急诊",
    2: "门诊",
    3: "其他医疗机构转入",
    9: "其他",
})

ADMISSION_CONDITION = CodeTable("admission_condition", {
    1: "有",
    2: "临床未确定",
    3: "情况不明",
    4: "无",
})

DRUG_ALLERGY = CodeTable("drug_allergy", {1: "有", 0: "无"})

BLOOD_TYPE = CodeTable("blood_type", {1: "A", 2: "B", 3: "O", 4: "AB"})

RH = CodeTable("rh", {1: "阴", 2: "阳"})

AUTOPSY = CodeTable("autopsy", {1: "是", 2: "否"})
