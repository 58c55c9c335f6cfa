from extensions import db


class Institution(db.Model):
    __tablename__ = "institutions"

    institution_id = db.Column(db.Integer, primary_key=True)
    institution_name = db.Column(db.String(150), nullable=False)
    address = db.Column(db.String(255), nullable=True)

    form_fillups = db.relationship("FormFillup", backref="institution", lazy=True)

    def __repr__(self):
        return f"<Institution {self.institution_name}>"


class Board(db.Model):
    __tablename__ = "boards"

    board_id = db.Column(db.Integer, primary_key=True)
    board_name = db.Column(db.String(150), nullable=False)

    form_fillups = db.relationship("FormFillup", backref="board", lazy=True)

    def __repr__(self):
        return f"<Board {self.board_name}>"
