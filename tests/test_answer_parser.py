"""
Recognition Answer Parsing Tests
"""
from ingest.answer_parser import RAW_TEXT_KEY, parse_answer


class TestParseAnswer:

    def test_bare_json(self):
        assert parse_answer('{"姓名": "张三", "年龄": 45}') == {"姓名": "张三", "年龄": 45}

    def test_json_fence(self):
        answer = '识别结果如下：\n```json\n{"姓名": "张三"}\n```\n请核对。'
        assert parse_answer(answer) == {"姓名": "张三"}

    def test_plain_fence(self):
        answer = '```\n{"性别": "女"}\n```'
        assert parse_answer(answer) == {"性别": "女"}

    def test_embedded_object(self):
        answer = '好的，以下是结构化数据 {"姓名": "李四", "联系人": {"姓名": "王五"}} 以上。'
        assert parse_answer(answer) == {"姓名": "李四", "联系人": {"姓名": "王五"}}

    def test_unparsable_keeps_raw_text(self):
        answer = "图片太模糊，无法识别"
        data = parse_answer(answer)

        assert data[RAW_TEXT_KEY] == answer
        assert data["姓名"] == ""
        assert data["性别"] == ""
        assert data["年龄"] == ""

    def test_broken_json_falls_back(self):
        answer = '```json\n{"姓名": "张三",\n```'
        assert parse_answer(answer)[RAW_TEXT_KEY] == answer

    def test_json_array_yields_embedded_object(self):
        """A top-level array is not an extraction; the object inside it is"""
        assert parse_answer('[{"姓名": "张三"}]') == {"姓名": "张三"}
