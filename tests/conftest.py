"""
Test Configuration and Fixtures
"""
import pytest
from sqlmodel import SQLModel

import db


SAMPLE_EXTRACTION = {
    "姓名": "张三",
    "性别": "1",
    "年龄": "45岁",
    "出生日期": "1979年03月05日",
    "国籍": "中国",
    "出生地": "北京",
    "籍贯": "河北",
    "民族": "汉族",
    "身份证号": "110101197903051234",
    "职业": "工程师",
    "婚姻": 2,
    "电话": 13800138000,
    "现住址": "北京市朝阳区",
    "邮编": " 100020 ",
    "户口地址": "北京市东城区",
    "户口邮编": 100010,
    "工作单位及地址": "某某公司",
    "单位电话": "010-12345678",
    "单位邮编": "100000",
    "联系人": {"姓名": "李四", "电话": "13900139000", "关系": "配偶"},
    "入院信息": {"入院科别": "心内科", "病房": "3病区", "入院时间": "2024-03-01", "入院途径": "2"},
    "出院信息": {"出院时间": "2024-03-10", "出院科别": "心内科", "实际住院天数": "9天"},
    "诊断信息": {
        "门急诊诊断": "胸痛",
        "门急诊疾病编码": "R07.4, R07.3",
        "主要诊断": "冠心病",
        "主要诊断疾病编码": "I25.1",
        "入院病情": ["1", "2"],
        "其他诊断": ["高血压", "糖尿病", "高脂血症"],
        "其他疾病编码": ["I10"],
        "其他入院病情": [1, "情况不明"],
    },
    "病理信息": {"病理诊断": "无", "血型": 4, "Rh": "2", "药物过敏": 0, "死亡患者尸检": ""},
    "医务人员": {"科主任": "王主任", "主任医师": "赵医师", "编码员": "钱编码"},
    "病案质量": {"病案质量": "甲", "质控医师": "孙医师", "质控日期": "2024年03月12日"},
}


@pytest.fixture
def sample_extraction():
    """A fairly complete OCR answer for one front sheet"""
    import copy
    return copy.deepcopy(SAMPLE_EXTRACTION)


@pytest.fixture(scope='function')
def database():
    """Fresh in-memory database per test"""
    engine = db.configure("sqlite://")
    db.init_db()
    yield engine
    SQLModel.metadata.drop_all(engine)


class FakeRecognizer:
    """Stands in for DifyClient; returns queued answers or raises queued errors"""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = []

    def recognize(self, filename, content, content_type=None):
        self.calls.append((filename, content, content_type))
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def fake_recognizer():
    return FakeRecognizer


@pytest.fixture
def client(database):
    """FastAPI test client backed by the in-memory database"""
    from fastapi.testclient import TestClient
    import main

    test_client = TestClient(main.app)
    yield test_client
    main.app.dependency_overrides.clear()
